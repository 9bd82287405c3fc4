import base64
from typing import Any

import httpx
import openai

from lab_analysis.gateway.client_base import BaseCompletionClient
from lab_analysis.gateway.exceptions import (
    ProviderNetworkError,
    ProviderQuotaError,
    ProviderResponseError,
)
from lab_analysis.gateway.models import Completion

INSUFFICIENT_QUOTA_CODE = "insufficient_quota"


class OpenAIClientAdapter(BaseCompletionClient):
    """Completion client built on the OpenAI-compatible chat API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
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
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": f"{prompt}\n\n{content}"},
        ]
        return await self._create(model, temperature, max_tokens, json_output, messages)

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
        encoded = base64.b64encode(image).decode("ascii")
        messages = [
            {"role": "system", "content": system_prompt},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "image_url",
                        "image_url": {
                            "url": f"data:{mime_type};base64,{encoded}",
                            "detail": "high",
                        },
                    },
                ],
            },
        ]
        return await self._create(model, temperature, max_tokens, json_output, messages)

    async def _create(
        self,
        model: str,
        temperature: float,
        max_tokens: int,
        json_output: bool,
        messages: list[dict[str, Any]],
    ) -> Completion:
        request: dict[str, Any] = {
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if json_output:
            request["response_format"] = {"type": "json_object"}
        try:
            response = await self._client.chat.completions.create(**request)
        except openai.RateLimitError as exc:
            if getattr(exc, "code", None) == INSUFFICIENT_QUOTA_CODE:
                raise ProviderQuotaError(f"AI provider quota exhausted: {exc}") from exc
            raise ProviderNetworkError(f"AI provider rate limit: {exc}") from exc
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ProviderNetworkError(
                f"AI provider network error: {exc}"
            ) from exc
        except openai.APIError as exc:
            raise ProviderNetworkError(
                f"AI provider API error: {exc}"
            ) from exc

        if not response.choices:
            raise ProviderResponseError("AI returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise ProviderResponseError("AI returned empty response")
        total_tokens = getattr(response.usage, "total_tokens", None)
        return Completion(
            text=content,
            tokens_used=total_tokens if isinstance(total_tokens, int) else None,
        )
