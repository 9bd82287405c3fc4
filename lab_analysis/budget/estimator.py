"""Token estimation and deterministic truncation of model input payloads.

Token counts are approximated as ``ceil(characters / 4)`` over the payload's
serialized form. Truncation is a pure recursive transform: it returns a new
structure and never mutates its input.

Rules applied when a payload exceeds its budget:

* strings longer than 1000 characters are cut and get a truncation marker;
* arrays longer than 20 elements keep a head and a tail sample around a
  marker that states how many elements were dropped;
* objects nested 3 or more levels deep collapse to ``[Object with N keys]``;
* objects with more than 20 keys keep the first 20 plus ``_truncated_info``.

If the result is still over budget, an aggressive pass keeps only the
essential (patient identity) fields and reduces everything else to one-line
cardinality summaries.
"""

import json
import math
from collections.abc import Mapping
from typing import Any

from lab_analysis.logging.logger import Log

CHARS_PER_TOKEN = 4
MAX_STRING_LENGTH = 1000
MAX_ARRAY_ITEMS = 20
MAX_OBJECT_KEYS = 20
MAX_DEPTH = 3

STRING_TRUNCATION_MARKER = "... (truncated)"
TRUNCATED_INFO_KEY = "_truncated_info"
TRUNCATION_SUMMARY_KEY = "_truncation_summary"
ESSENTIAL_FIELDS = ("patient_data", "patientData")


def serialize(payload: Any) -> str:
    """Return the text a payload is sent to a model as."""
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)


def estimate_tokens(payload: Any) -> int:
    """Estimate the token cost of a payload (characters / 4, rounded up)."""
    return math.ceil(len(serialize(payload)) / CHARS_PER_TOKEN)


def truncate(payload: Any, max_tokens: int) -> Any:
    """Shrink a payload until it fits ``max_tokens`` or cannot shrink further.

    Never raises. Applying it twice with the same budget yields the same
    result as applying it once.
    """
    try:
        return _truncate(payload, max_tokens)
    except (RecursionError, TypeError, ValueError) as exc:
        Log.warning(f"Payload truncation failed, sending summary only: {exc}")
        return {TRUNCATION_SUMMARY_KEY: f"Payload could not be processed ({type(payload).__name__})"}


def truncate_tree(node: Any, depth: int = 0) -> Any:
    """Apply the string, array, depth and key-count rules recursively."""
    if isinstance(node, str):
        return _truncate_string(node)
    if isinstance(node, Mapping):
        return _truncate_object(node, depth)
    if isinstance(node, (list, tuple)):
        return _truncate_array(node, depth)
    return node


def _truncate(payload: Any, max_tokens: int) -> Any:
    estimated = estimate_tokens(payload)
    if estimated <= max_tokens:
        return payload
    if isinstance(payload, Mapping) and TRUNCATION_SUMMARY_KEY in payload:
        return payload

    Log.info("Truncating model input", estimated_tokens=estimated, max_tokens=max_tokens)
    if not isinstance(payload, Mapping):
        return truncate_tree(payload)

    truncated = {
        key: value if key in ESSENTIAL_FIELDS else truncate_tree(value)
        for key, value in payload.items()
    }
    new_estimate = estimate_tokens(truncated)
    Log.debug("Payload size after truncation", estimated_tokens=new_estimate)
    if new_estimate <= max_tokens:
        return truncated

    Log.warning(
        "Payload still over budget, keeping essential fields only",
        estimated_tokens=new_estimate,
        max_tokens=max_tokens,
    )
    return _minimal(truncated, new_estimate, max_tokens)


def _truncate_string(value: str) -> str:
    if len(value) <= MAX_STRING_LENGTH:
        return value
    return value[:MAX_STRING_LENGTH] + STRING_TRUNCATION_MARKER


def _truncate_array(items: list[Any] | tuple[Any, ...], depth: int) -> list[Any]:
    if len(items) <= MAX_ARRAY_ITEMS:
        return [truncate_tree(item, depth + 1) for item in items]
    # one slot goes to the marker so the result stays within the limit
    kept = MAX_ARRAY_ITEMS - 1
    head = math.ceil(kept / 2)
    tail = kept - head
    dropped = len(items) - kept
    return [
        *(truncate_tree(item, depth + 1) for item in items[:head]),
        f"... {dropped} more items truncated ...",
        *(truncate_tree(item, depth + 1) for item in items[len(items) - tail:]),
    ]


def _truncate_object(obj: Mapping[str, Any], depth: int) -> dict[str, Any] | str:
    if depth >= MAX_DEPTH:
        return f"[Object with {len(obj)} keys]"
    keys = [key for key in obj if key != TRUNCATED_INFO_KEY]
    if len(keys) <= MAX_OBJECT_KEYS:
        return {key: truncate_tree(value, depth + 1) for key, value in obj.items()}
    result = {key: truncate_tree(obj[key], depth + 1) for key in keys[:MAX_OBJECT_KEYS]}
    result[TRUNCATED_INFO_KEY] = (
        f"Original object had {len(keys)} keys, truncated to {MAX_OBJECT_KEYS}"
    )
    return result


def _minimal(truncated: Mapping[str, Any], estimated: int, max_tokens: int) -> dict[str, Any]:
    minimal: dict[str, Any] = {
        key: truncated[key] for key in ESSENTIAL_FIELDS if key in truncated
    }
    minimal[TRUNCATION_SUMMARY_KEY] = (
        f"Full payload exceeded the token budget ({estimated} > {max_tokens}); "
        "only essential fields were preserved."
    )
    for key, value in truncated.items():
        if key not in ESSENTIAL_FIELDS:
            minimal[f"{key}_summary"] = _cardinality(key, value)
    return minimal


def _cardinality(key: str, value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return f"Array with {len(value)} items"
    if isinstance(value, Mapping):
        return f"Object with {len(value)} keys"
    if isinstance(value, str):
        return f"Text with {len(value)} characters"
    return f"Data for {key} unavailable due to token limit"
