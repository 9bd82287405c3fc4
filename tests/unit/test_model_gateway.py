import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from lab_analysis.budget.ledger import InMemoryTokenLedger
from lab_analysis.budget.quota import TOKEN_LIMIT_MESSAGE, TokenBudgeter
from lab_analysis.gateway.exceptions import ProviderNetworkError, ProviderQuotaError
from lab_analysis.gateway.gateway import (
    STRUCTURED_OUTPUT_INSTRUCTION,
    TEXT_TRUNCATION_MARKER,
    ModelGateway,
)
from lab_analysis.gateway.models import Completion, ImageContent, ProviderKind, TextContent
from lab_analysis.gateway.registry import ProviderRegistry, build_provider_config


def _make_client(text: str = '{"summary": "ok"}', tokens_used: int | None = 50) -> MagicMock:
    client = MagicMock()
    client.complete_text = AsyncMock(return_value=Completion(text=text, tokens_used=tokens_used))
    client.complete_vision = AsyncMock(return_value=Completion(text=text, tokens_used=tokens_used))
    return client


def _make_gateway(
    client: MagicMock,
    *,
    limit: int = 10_000,
    max_input_tokens: int = 1000,
    timeout_seconds: float = 5,
) -> tuple[ModelGateway, InMemoryTokenLedger]:
    registry = ProviderRegistry()
    registry.register(ProviderKind.OPENAI, client)
    ledger = InMemoryTokenLedger()
    gateway = ModelGateway(
        registry=registry,
        budgeter=TokenBudgeter(ledger, default_limit=limit),
        max_input_tokens=max_input_tokens,
        timeout_seconds=timeout_seconds,
        default_vision_model="gpt-4o",
        image_token_estimate=765,
        system_prompt="system",
    )
    return gateway, ledger


CONFIG = build_provider_config("gpt-4o-mini", 0.3, 200)


class TestQuota:
    @pytest.mark.asyncio
    async def test_exhausted_tenant_never_reaches_provider(self) -> None:
        client = _make_client()
        gateway, _ = _make_gateway(client, limit=0)
        response = await gateway.analyze(TextContent("x"), "Analyze", CONFIG, "acme")
        assert response.success is False
        assert response.token_limit_reached is True
        assert response.message == TOKEN_LIMIT_MESSAGE
        client.complete_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_quota_error_sets_flag(self) -> None:
        client = _make_client()
        client.complete_text.side_effect = ProviderQuotaError("quota")
        gateway, ledger = _make_gateway(client)
        response = await gateway.analyze(TextContent("x"), "Analyze", CONFIG, "acme")
        assert response.token_limit_reached is True
        assert ledger.total_for("acme") == 0


class TestInstruction:
    def test_appends_json_instruction(self) -> None:
        prompt = ModelGateway.build_instruction("Analyze these results", structured=True)
        assert prompt == f"Analyze these results\n\n{STRUCTURED_OUTPUT_INSTRUCTION}"

    def test_keeps_instruction_that_mentions_json(self) -> None:
        assert ModelGateway.build_instruction("Answer in json.", structured=True) == "Answer in json."

    def test_free_text_is_left_alone(self) -> None:
        assert ModelGateway.build_instruction("Summarize", structured=False) == "Summarize"

    @pytest.mark.asyncio
    async def test_structured_call_requests_json_output(self) -> None:
        client = _make_client()
        gateway, _ = _make_gateway(client)
        await gateway.analyze(TextContent("Glucose 132"), "Analyze", CONFIG, "acme")
        kwargs = client.complete_text.call_args.kwargs
        assert kwargs["json_output"] is True
        assert kwargs["prompt"].endswith(STRUCTURED_OUTPUT_INSTRUCTION)
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["system_prompt"] == "system"


class TestVision:
    @pytest.mark.asyncio
    async def test_swaps_in_vision_model(self) -> None:
        client = _make_client()
        gateway, _ = _make_gateway(client)
        config = build_provider_config("gpt-3.5-turbo", 0.3, 200)
        response = await gateway.analyze(ImageContent(b"png"), "Read", config, "acme")
        assert response.success is True
        assert response.model == "gpt-4o"
        assert client.complete_vision.call_args.kwargs["model"] == "gpt-4o"

    @pytest.mark.asyncio
    async def test_keeps_vision_capable_model(self) -> None:
        client = _make_client()
        gateway, _ = _make_gateway(client)
        await gateway.analyze(ImageContent(b"png", "image/jpeg"), "Read", CONFIG, "acme")
        kwargs = client.complete_vision.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["mime_type"] == "image/jpeg"


class TestUsage:
    @pytest.mark.asyncio
    async def test_records_reported_usage(self) -> None:
        gateway, ledger = _make_gateway(_make_client(tokens_used=123))
        response = await gateway.analyze(TextContent("x"), "Analyze", CONFIG, "acme", page_key="p")
        assert response.tokens_used == 123
        entries = ledger.entries_for("acme")
        assert [(e.tokens_used, e.model, e.page_key) for e in entries] == [(123, "gpt-4o-mini", "p")]

    @pytest.mark.asyncio
    async def test_estimates_usage_when_not_reported(self) -> None:
        gateway, ledger = _make_gateway(_make_client(text="a" * 40, tokens_used=None))
        response = await gateway.analyze(TextContent("b" * 40), "json please", CONFIG, "acme")
        # prompt (11 chars) + content (40) + completion (40)
        assert response.tokens_used == 3 + 10 + 10
        assert ledger.total_for("acme") == 23

    @pytest.mark.asyncio
    async def test_image_estimate_includes_flat_cost(self) -> None:
        gateway, ledger = _make_gateway(_make_client(text="a" * 4, tokens_used=None))
        await gateway.analyze(ImageContent(b"png"), "json", CONFIG, "acme")
        assert ledger.total_for("acme") == 1 + 765 + 1


class TestFailures:
    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        client = _make_client()

        async def slow(**_kwargs: object) -> Completion:
            await asyncio.sleep(1)
            return Completion(text="{}")

        client.complete_text = slow
        gateway, ledger = _make_gateway(client, timeout_seconds=0.01)
        response = await gateway.analyze(TextContent("x"), "Analyze", CONFIG, "acme")
        assert response.success is False
        assert "did not respond within" in response.message
        assert ledger.total_for("acme") == 0

    @pytest.mark.asyncio
    async def test_gateway_error_message_is_returned(self) -> None:
        client = _make_client()
        client.complete_text.side_effect = ProviderNetworkError("AI provider network error: boom")
        gateway, _ = _make_gateway(client)
        response = await gateway.analyze(TextContent("x"), "Analyze", CONFIG, "acme")
        assert response.success is False
        assert response.token_limit_reached is False
        assert response.message == "AI provider network error: boom"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self) -> None:
        client = _make_client()
        client.complete_text.side_effect = RuntimeError("kaboom")
        gateway, _ = _make_gateway(client)
        response = await gateway.analyze(TextContent("x"), "Analyze", CONFIG, "acme")
        assert response.success is False
        assert response.message == "Unexpected AI provider error"

    @pytest.mark.asyncio
    async def test_unregistered_provider(self) -> None:
        gateway, _ = _make_gateway(_make_client())
        config = build_provider_config("gemini-1.5-flash", 0.3, 200)
        response = await gateway.analyze(TextContent("x"), "Analyze", config, "acme")
        assert response.success is False
        assert "not configured" in response.message


class TestFitText:
    def test_short_text_untouched(self) -> None:
        gateway, _ = _make_gateway(_make_client(), max_input_tokens=10)
        assert gateway.fit_text("short") == "short"

    def test_long_text_is_cut_to_budget(self) -> None:
        gateway, _ = _make_gateway(_make_client(), max_input_tokens=10)
        fitted = gateway.fit_text("x" * 100)
        assert fitted.endswith(TEXT_TRUNCATION_MARKER)
        assert len(fitted) == 40

    def test_structured_payload_is_serialized(self) -> None:
        gateway, _ = _make_gateway(_make_client(), max_input_tokens=1000)
        payload = {"patient_data": {"age": 40}, "lab_results": "Glucose 132"}
        assert json.loads(gateway.fit_text(payload)) == payload

    @pytest.mark.asyncio
    async def test_provider_receives_fitted_text(self) -> None:
        client = _make_client()
        gateway, _ = _make_gateway(client, max_input_tokens=10)
        await gateway.analyze(TextContent("y" * 500), "Analyze", CONFIG, "acme")
        assert len(client.complete_text.call_args.kwargs["content"]) == 40
