import json
from collections.abc import Iterator
from typing import Any


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding Markdown code fence, if any."""
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)
    return cleaned.strip()


def find_balanced_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` substring of ``text``.

    Braces inside JSON string literals are ignored, so prose such as
    ``Here is the result: {"summary": "a {b} c"}`` yields the whole object.
    """
    return next(iter_balanced_objects(text), None)


def iter_balanced_objects(text: str) -> Iterator[str]:
    """Yield every balanced ``{...}`` substring in order of its opening brace."""
    start = text.find("{")
    while start != -1:
        end = _matching_brace(text, start)
        if end is not None:
            yield text[start:end + 1]
        start = text.find("{", start + 1)


def _matching_brace(text: str, start: int) -> int | None:
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def parse_json_object(raw: str) -> dict[str, Any] | None:
    """Parse a model response into a JSON object, or None if impossible.

    Tries a strict parse of the fence-stripped text first, then each balanced
    object embedded in surrounding prose.
    """
    cleaned = strip_code_fences(raw)
    if not cleaned:
        return None
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed
    if isinstance(parsed, str) and parsed != cleaned:
        # double-encoded JSON body
        return parse_json_object(parsed)

    for candidate in iter_balanced_objects(cleaned):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None
