import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from lab_analysis.gateway.client_base import BaseCompletionClient
from lab_analysis.gateway.exceptions import (
    ProviderNetworkError,
    ProviderQuotaError,
    ProviderResponseError,
)
from lab_analysis.gateway.models import Completion

JSON_MIME_TYPE = "application/json"


def is_quota_error(exc: genai_errors.APIError) -> bool:
    """Tell quota exhaustion apart from a transient 429 rate limit."""
    if getattr(exc, "code", None) != 429:
        return False
    message = str(exc).lower()
    return "quota" in message or "resource_exhausted" in message


class GeminiClientAdapter(BaseCompletionClient):
    """Completion client built on the google-genai async API."""

    def __init__(self, *, api_key: str, timeout_seconds: int) -> None:
        self._client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=timeout_seconds * 1000),
        )

    async def complete_text(
        self,
        *,
        model: str,
        system_prompt: str,
        prompt: str,
        content: str,
        temperature: float,
        max_tokens: int,
        json_output: bool,
    ) -> Completion:
        parts = [types.Part.from_text(text=f"{prompt}\n\n{content}")]
        return await self._generate(
            model, system_prompt, parts, temperature, max_tokens, json_output
        )

    async def complete_vision(
        self,
        *,
        model: str,
        system_prompt: str,
        prompt: str,
        image: bytes,
        mime_type: str,
        temperature: float,
        max_tokens: int,
        json_output: bool,
    ) -> Completion:
        parts = [
            types.Part.from_text(text=prompt),
            types.Part.from_bytes(data=image, mime_type=mime_type),
        ]
        return await self._generate(
            model, system_prompt, parts, temperature, max_tokens, json_output
        )

    async def _generate(
        self,
        model: str,
        system_prompt: str,
        parts: list[types.Part],
        temperature: float,
        max_tokens: int,
        json_output: bool,
    ) -> Completion:
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
            system_instruction=system_prompt or None,
            response_mime_type=JSON_MIME_TYPE if json_output else None,
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=parts,
                config=config,
            )
        except genai_errors.ClientError as exc:
            if is_quota_error(exc):
                raise ProviderQuotaError(f"AI provider quota exhausted: {exc}") from exc
            if getattr(exc, "code", None) == 429:
                raise ProviderNetworkError(f"AI provider rate limit: {exc}") from exc
            raise ProviderResponseError(f"AI provider rejected request: {exc}") from exc
        except (genai_errors.APIError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ProviderNetworkError(f"AI provider network error: {exc}") from exc

        text = response.text
        if not text:
            raise ProviderResponseError("AI returned empty response")
        total_tokens = getattr(response.usage_metadata, "total_token_count", None)
        return Completion(
            text=text,
            tokens_used=total_tokens if isinstance(total_tokens, int) else None,
        )
