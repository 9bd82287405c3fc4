# USD per 1000 tokens
MODEL_PRICING: dict[str, dict[str, float]] = {
    "gpt-4": {"input": 0.03, "output": 0.06},
    "gpt-4-32k": {"input": 0.06, "output": 0.12},
    "gpt-3.5-turbo": {"input": 0.0015, "output": 0.002},
    "gpt-3.5-turbo-16k": {"input": 0.003, "output": 0.004},
    "gpt-4-turbo": {"input": 0.01, "output": 0.03},
    "gpt-4o": {"input": 0.005, "output": 0.015},
}

_FALLBACK_MODEL = "gpt-4"

# Providers report a single total, so it is split by an average ratio.
INPUT_SHARE = 0.25
OUTPUT_SHARE = 0.75


def calculate_cost(tokens_used: int, model: str) -> float:
    """Approximate cost of a call from its total token count.

    A quarter of the tokens is priced at the input rate and the rest at the
    output rate. Models missing from the pricing table are priced as gpt-4.
    """
    pricing = MODEL_PRICING.get(model, MODEL_PRICING[_FALLBACK_MODEL])
    cost = (
        tokens_used * INPUT_SHARE / 1000 * pricing["input"]
        + tokens_used * OUTPUT_SHARE / 1000 * pricing["output"]
    )
    return round(cost, 6)
