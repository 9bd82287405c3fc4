from unittest.mock import MagicMock, patch

from lab_analysis.config.settings import Settings
from lab_analysis.gateway.config_store import SettingsProviderConfigStore, default_provider_config
from lab_analysis.gateway.factory import GatewayFactory
from lab_analysis.gateway.gateway import ModelGateway
from lab_analysis.gateway.models import ProviderKind


def _make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {"openai_api_key": "", "openai_base_url": None, "gemini_api_key": ""}
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


class TestCreateRegistry:
    def test_example_provider_is_always_registered(self) -> None:
        registry = GatewayFactory.create_registry(_make_settings())
        assert registry.kinds() == [ProviderKind.EXAMPLE]

    def test_registers_openai_with_key(self) -> None:
        with patch("lab_analysis.gateway.factory.OpenAIClientAdapter") as adapter_cls:
            registry = GatewayFactory.create_registry(_make_settings(openai_api_key="sk-test"))
        assert ProviderKind.OPENAI in registry.kinds()
        adapter_cls.assert_called_once_with(api_key="sk-test", timeout_seconds=60, base_url=None)

    def test_registers_openai_compatible_base_url(self) -> None:
        with patch("lab_analysis.gateway.factory.OpenAIClientAdapter"):
            registry = GatewayFactory.create_registry(
                _make_settings(openai_base_url="http://localhost:11434/v1")
            )
        assert ProviderKind.OPENAI in registry.kinds()

    def test_registers_gemini_with_key(self) -> None:
        with patch("lab_analysis.gateway.factory.GeminiClientAdapter") as adapter_cls:
            registry = GatewayFactory.create_registry(_make_settings(gemini_api_key="g-key"))
        assert ProviderKind.GEMINI in registry.kinds()
        adapter_cls.assert_called_once_with(api_key="g-key", timeout_seconds=60)


class TestCreateGateway:
    def test_builds_gateway(self) -> None:
        gateway = GatewayFactory.create(_make_settings(), MagicMock())
        assert isinstance(gateway, ModelGateway)


class TestConfigStore:
    def test_default_config_follows_settings(self) -> None:
        config = default_provider_config(
            _make_settings(default_model="gemini-1.5-flash", default_max_tokens=321)
        )
        assert config.provider_kind is ProviderKind.GEMINI
        assert config.max_tokens == 321

    def test_settings_store_serves_every_page_key(self) -> None:
        store = SettingsProviderConfigStore(_make_settings(default_model="example"))
        assert store.get_active_config("lab_analysis") is store.get_active_config("other")
        assert store.get_active_config("x").provider_kind is ProviderKind.EXAMPLE
