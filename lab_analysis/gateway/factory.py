from lab_analysis.budget.quota import TokenBudgeter
from lab_analysis.config.settings import Settings
from lab_analysis.gateway.example_client_adapter import ExampleClientAdapter
from lab_analysis.gateway.gateway import ModelGateway
from lab_analysis.gateway.gemini_client_adapter import GeminiClientAdapter
from lab_analysis.gateway.models import ProviderKind
from lab_analysis.gateway.openai_client_adapter import OpenAIClientAdapter
from lab_analysis.gateway.prompt_loader import SYSTEM_PROMPT, load_prompt
from lab_analysis.gateway.registry import ProviderRegistry
from lab_analysis.logging.logger import Log


class GatewayFactory:
    """Creates the provider registry and model gateway from settings."""

    @classmethod
    def create(cls, settings: Settings, budgeter: TokenBudgeter) -> ModelGateway:
        """Create a configured gateway from application settings."""
        return ModelGateway(
            registry=cls.create_registry(settings),
            budgeter=budgeter,
            max_input_tokens=settings.max_input_tokens,
            timeout_seconds=settings.provider_timeout_seconds,
            default_vision_model=settings.default_vision_model,
            image_token_estimate=settings.vision_image_token_estimate,
            system_prompt=load_prompt(SYSTEM_PROMPT),
        )

    @classmethod
    def create_registry(cls, settings: Settings) -> ProviderRegistry:
        """Register every provider that has credentials configured.

        The offline example provider is always available.
        """
        registry = ProviderRegistry()
        registry.register(ProviderKind.EXAMPLE, ExampleClientAdapter())
        if settings.openai_api_key or settings.openai_base_url:
            registry.register(
                ProviderKind.OPENAI,
                OpenAIClientAdapter(
                    api_key=settings.openai_api_key,
                    timeout_seconds=settings.provider_timeout_seconds,
                    base_url=settings.openai_base_url,
                ),
            )
        if settings.gemini_api_key:
            registry.register(
                ProviderKind.GEMINI,
                GeminiClientAdapter(
                    api_key=settings.gemini_api_key,
                    timeout_seconds=settings.provider_timeout_seconds,
                ),
            )
        Log.info(
            "AI providers configured",
            providers=",".join(kind.value for kind in registry.kinds()),
        )
        return registry
