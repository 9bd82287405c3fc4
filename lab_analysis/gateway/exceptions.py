class GatewayError(Exception):
    """Raised when a model provider call fails."""


class ProviderNetworkError(GatewayError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""


class ProviderResponseError(GatewayError):
    """Raised when the AI provider answers with an empty or rejected response."""


class ProviderQuotaError(GatewayError):
    """Raised when the AI provider reports that the account quota is exhausted."""


class ProviderNotConfiguredError(GatewayError):
    """Raised when no client is registered for the requested provider."""


class PromptLoadError(GatewayError):
    """Raised when a bundled prompt template cannot be read."""
