"""Example completion client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseCompletionClient and register the provider in GatewayFactory.
"""

import json
from typing import ClassVar

from lab_analysis.gateway.client_base import BaseCompletionClient
from lab_analysis.gateway.models import Completion


class ExampleClientAdapter(BaseCompletionClient):
    """Example adapter that returns a fixed, valid lab analysis JSON.

    No network calls and no usage reporting, so the gateway falls back to its
    character-based estimate. Useful for local development and tests.
    """

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {
        "summary": (
            "Example analysis: one marker is outside the reference range and "
            "should be reviewed with the attending physician."
        ),
        "outOfRange": [
            {
                "name": "Hemoglobin",
                "value": "9.8",
                "unit": "g/dL",
                "reference": "12-16",
                "interpretation": "Below reference range, compatible with anemia",
            }
        ],
        "recommendations": [
            "Repeat the complete blood count in 30 days.",
            "Review iron intake and ferritin levels with a physician.",
        ],
    }

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
        _ = model, system_prompt, prompt, content, temperature, max_tokens, json_output
        return Completion(text=json.dumps(self.DEFAULT_RESPONSE))

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
        _ = model, system_prompt, prompt, image, mime_type, temperature, max_tokens, json_output
        return Completion(text=json.dumps(self.DEFAULT_RESPONSE))
