from dataclasses import dataclass
from enum import Enum
from typing import Any


class ProviderKind(str, Enum):
    OPENAI = "openai"
    GEMINI = "gemini"
    EXAMPLE = "example"


class Capability(str, Enum):
    TEXT = "text"
    VISION = "vision"


@dataclass(frozen=True)
class ProviderConfig:
    """Model settings for one page key.

    ``provider_kind`` is resolved from ``model_id`` when the config is built,
    so switching providers only takes a model name change.
    """

    provider_kind: ProviderKind
    model_id: str
    temperature: float
    max_tokens: int
    prompt_template: str = ""
    is_active: bool = True


@dataclass(frozen=True)
class TextContent:
    """Text sent to a model: plain text or a structured (JSON-like) payload."""

    payload: Any


@dataclass(frozen=True)
class ImageContent:
    data: bytes
    mime_type: str = "image/png"


@dataclass(frozen=True)
class Completion:
    """Provider answer. ``tokens_used`` is None when the provider does not report usage."""

    text: str
    tokens_used: int | None = None


@dataclass(frozen=True)
class GatewayResponse:
    success: bool
    raw: str = ""
    message: str = ""
    tokens_used: int = 0
    token_limit_reached: bool = False
    model: str = ""
