from abc import ABC, abstractmethod

from lab_analysis.config.settings import Settings
from lab_analysis.gateway.models import ProviderConfig
from lab_analysis.gateway.registry import build_provider_config


def default_provider_config(settings: Settings) -> ProviderConfig:
    """Built-in configuration used when no active configuration is stored."""
    return build_provider_config(
        model_id=settings.default_model,
        temperature=settings.default_temperature,
        max_tokens=settings.default_max_tokens,
    )


class BaseProviderConfigStore(ABC):
    """Read-only source of provider configuration, keyed by page key."""

    @abstractmethod
    def get_active_config(self, page_key: str) -> ProviderConfig:
        """Return the active configuration for ``page_key``.

        Missing or inactive configuration must degrade to the built-in
        defaults instead of raising.
        """


class SettingsProviderConfigStore(BaseProviderConfigStore):
    """Serves the built-in defaults for every page key."""

    def __init__(self, settings: Settings) -> None:
        self._config = default_provider_config(settings)

    def get_active_config(self, page_key: str) -> ProviderConfig:
        _ = page_key
        return self._config
