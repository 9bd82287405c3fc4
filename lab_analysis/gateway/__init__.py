from lab_analysis.gateway.factory import GatewayFactory
from lab_analysis.gateway.gateway import ModelGateway
from lab_analysis.gateway.models import (
    GatewayResponse,
    ImageContent,
    ProviderConfig,
    ProviderKind,
    TextContent,
)
from lab_analysis.gateway.registry import ProviderRegistry, resolve_provider_kind

__all__ = [
    "GatewayFactory",
    "GatewayResponse",
    "ImageContent",
    "ModelGateway",
    "ProviderConfig",
    "ProviderKind",
    "ProviderRegistry",
    "TextContent",
    "resolve_provider_kind",
]
