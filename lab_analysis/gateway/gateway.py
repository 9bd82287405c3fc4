"""Routes analysis calls to the configured AI provider."""

import asyncio

from lab_analysis.budget.estimator import CHARS_PER_TOKEN, estimate_tokens, serialize, truncate
from lab_analysis.budget.quota import TOKEN_LIMIT_MESSAGE, TokenBudgeter
from lab_analysis.gateway.exceptions import GatewayError, ProviderQuotaError
from lab_analysis.gateway.models import (
    Capability,
    Completion,
    GatewayResponse,
    ImageContent,
    ProviderConfig,
    TextContent,
)
from lab_analysis.gateway.registry import ProviderRegistry, supports_vision
from lab_analysis.logging.logger import Log

STRUCTURED_OUTPUT_INSTRUCTION = (
    "Respond only with a valid JSON object with the keys "
    '"summary", "outOfRange" and "recommendations".'
)
TEXT_TRUNCATION_MARKER = "\n... (truncated)"


class ModelGateway:
    """Single entry point for provider calls.

    Checks the tenant quota before calling, keeps text input within the token
    budget, bounds every call by a timeout and records usage afterwards.
    Provider failures are returned as ``GatewayResponse(success=False)``.
    """

    def __init__(
        self,
        *,
        registry: ProviderRegistry,
        budgeter: TokenBudgeter,
        max_input_tokens: int,
        timeout_seconds: float,
        default_vision_model: str,
        image_token_estimate: int,
        system_prompt: str = "",
    ) -> None:
        self._registry = registry
        self._budgeter = budgeter
        self._max_input_tokens = max_input_tokens
        self._timeout_seconds = timeout_seconds
        self._default_vision_model = default_vision_model
        self._image_token_estimate = image_token_estimate
        self._system_prompt = system_prompt

    async def analyze(
        self,
        content: TextContent | ImageContent,
        instruction: str,
        config: ProviderConfig,
        tenant_id: str,
        *,
        structured: bool = True,
        page_key: str = "",
    ) -> GatewayResponse:
        quota = await asyncio.to_thread(self._budgeter.check_quota, tenant_id)
        if not quota.allowed:
            return GatewayResponse(
                success=False,
                message=quota.message or TOKEN_LIMIT_MESSAGE,
                token_limit_reached=True,
                model=config.model_id,
            )

        prompt = self.build_instruction(instruction, structured)
        model = self._select_model(content, config)
        Log.info(
            "Calling AI provider",
            provider=config.provider_kind.value,
            model=model,
            input="image" if isinstance(content, ImageContent) else "text",
        )
        Log.debug(f"AI prompt:\n{prompt}")

        try:
            completion, estimate = await asyncio.wait_for(
                self._call(content, prompt, config, model, structured),
                timeout=self._timeout_seconds,
            )
        except ProviderQuotaError as exc:
            Log.warning(f"AI provider reported quota exhaustion: {exc}", tenant=tenant_id)
            return GatewayResponse(
                success=False,
                message=TOKEN_LIMIT_MESSAGE,
                token_limit_reached=True,
                model=model,
            )
        except asyncio.TimeoutError:
            Log.warning(
                "AI provider call timed out",
                model=model,
                timeout_seconds=self._timeout_seconds,
            )
            return GatewayResponse(
                success=False,
                message=f"AI provider did not respond within {self._timeout_seconds} seconds",
                model=model,
            )
        except GatewayError as exc:
            Log.error(f"AI provider call failed: {exc}", model=model)
            return GatewayResponse(success=False, message=str(exc), model=model)
        except Exception as exc:  # noqa: BLE001
            Log.exception(f"Unexpected AI provider failure: {exc}", model=model)
            return GatewayResponse(
                success=False, message="Unexpected AI provider error", model=model
            )

        tokens_used = completion.tokens_used if completion.tokens_used is not None else estimate
        await asyncio.to_thread(
            self._budgeter.record_usage, tenant_id, tokens_used, model, page_key
        )
        Log.debug(f"AI raw response:\n{completion.text}")
        return GatewayResponse(
            success=True,
            raw=completion.text,
            tokens_used=tokens_used,
            model=model,
        )

    @staticmethod
    def build_instruction(instruction: str, structured: bool) -> str:
        """Append the JSON output instruction unless the caller already asks for JSON."""
        instruction = instruction.strip()
        if not structured or "json" in instruction.lower():
            return instruction
        if not instruction:
            return STRUCTURED_OUTPUT_INSTRUCTION
        return f"{instruction}\n\n{STRUCTURED_OUTPUT_INSTRUCTION}"

    def fit_text(self, payload: object) -> str:
        """Serialize a text payload so it fits the input token budget.

        Structured payloads go through ``truncate``; plain text is cut at the
        character length the budget allows.
        """
        if isinstance(payload, str):
            if estimate_tokens(payload) <= self._max_input_tokens:
                return payload
            limit = self._max_input_tokens * CHARS_PER_TOKEN - len(TEXT_TRUNCATION_MARKER)
            Log.info(
                "Truncating text input",
                characters=len(payload),
                max_tokens=self._max_input_tokens,
            )
            return payload[:max(0, limit)] + TEXT_TRUNCATION_MARKER
        return serialize(truncate(payload, self._max_input_tokens))

    def _select_model(self, content: TextContent | ImageContent, config: ProviderConfig) -> str:
        if isinstance(content, ImageContent) and not supports_vision(config):
            Log.info(
                "Configured model does not accept images, using vision model",
                model=config.model_id,
                vision_model=self._default_vision_model,
            )
            return self._default_vision_model
        return config.model_id

    async def _call(
        self,
        content: TextContent | ImageContent,
        prompt: str,
        config: ProviderConfig,
        model: str,
        structured: bool,
    ) -> tuple[Completion, int]:
        if isinstance(content, ImageContent):
            client = self._registry.get(config.provider_kind, Capability.VISION)
            completion = await client.complete_vision(
                model=model,
                system_prompt=self._system_prompt,
                prompt=prompt,
                image=content.data,
                mime_type=content.mime_type,
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                json_output=structured,
            )
            estimate = (
                estimate_tokens(prompt)
                + self._image_token_estimate
                + estimate_tokens(completion.text)
            )
            return completion, estimate

        text = self.fit_text(content.payload)
        client = self._registry.get(config.provider_kind, Capability.TEXT)
        completion = await client.complete_text(
            model=model,
            system_prompt=self._system_prompt,
            prompt=prompt,
            content=text,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            json_output=structured,
        )
        estimate = estimate_tokens(prompt) + estimate_tokens(text) + estimate_tokens(completion.text)
        return completion, estimate
