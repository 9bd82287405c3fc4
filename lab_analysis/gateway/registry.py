"""Capability-tagged provider registry.

Provider selection is driven by the configured model name only. The name is
mapped to a ``ProviderKind`` once, when a ``ProviderConfig`` is built, and
the gateway then looks up the client for that kind and the capability the
call needs.
"""

from dataclasses import dataclass

from lab_analysis.gateway.client_base import BaseCompletionClient
from lab_analysis.gateway.exceptions import ProviderNotConfiguredError
from lab_analysis.gateway.models import Capability, ProviderConfig, ProviderKind
from lab_analysis.logging.logger import Log

GEMINI_MODEL_PATTERNS = ("gemini", "bison", "codechat", "textembedding", "palm")
EXAMPLE_MODEL_PREFIX = "example"
OPENAI_VISION_MODELS = ("gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-4-vision-preview")

ALL_CAPABILITIES = frozenset({Capability.TEXT, Capability.VISION})


def resolve_provider_kind(model_id: str) -> ProviderKind:
    """Map a model identifier to the provider family that serves it."""
    name = model_id.strip().lower()
    if name.startswith(EXAMPLE_MODEL_PREFIX):
        return ProviderKind.EXAMPLE
    if any(pattern in name for pattern in GEMINI_MODEL_PATTERNS):
        return ProviderKind.GEMINI
    return ProviderKind.OPENAI


def build_provider_config(
    model_id: str,
    temperature: float,
    max_tokens: int,
    prompt_template: str = "",
    is_active: bool = True,
) -> ProviderConfig:
    return ProviderConfig(
        provider_kind=resolve_provider_kind(model_id),
        model_id=model_id,
        temperature=temperature,
        max_tokens=max_tokens,
        prompt_template=prompt_template,
        is_active=is_active,
    )


def supports_vision(config: ProviderConfig) -> bool:
    """Whether the configured model itself accepts image input."""
    if config.provider_kind is not ProviderKind.OPENAI:
        return True
    name = config.model_id.strip().lower()
    return any(
        name == model or name.startswith(f"{model}-") for model in OPENAI_VISION_MODELS
    )


@dataclass(frozen=True)
class RegisteredProvider:
    kind: ProviderKind
    client: BaseCompletionClient
    capabilities: frozenset[Capability]


class ProviderRegistry:
    """Holds one completion client per provider kind."""

    def __init__(self) -> None:
        self._providers: dict[ProviderKind, RegisteredProvider] = {}

    def register(
        self,
        kind: ProviderKind,
        client: BaseCompletionClient,
        capabilities: frozenset[Capability] = ALL_CAPABILITIES,
    ) -> None:
        self._providers[kind] = RegisteredProvider(kind, client, capabilities)
        Log.debug(
            "Registered AI provider",
            provider=kind.value,
            capabilities=",".join(sorted(c.value for c in capabilities)),
        )

    def get(self, kind: ProviderKind, capability: Capability) -> BaseCompletionClient:
        """Return the client for ``kind``.

        Raises:
            ProviderNotConfiguredError: if no client is registered for the
                kind, or it lacks the capability.
        """
        provider = self._providers.get(kind)
        if provider is None:
            raise ProviderNotConfiguredError(
                f"AI provider '{kind.value}' is not configured"
            )
        if capability not in provider.capabilities:
            raise ProviderNotConfiguredError(
                f"AI provider '{kind.value}' does not support {capability.value} input"
            )
        return provider.client

    def kinds(self) -> list[ProviderKind]:
        return list(self._providers)
