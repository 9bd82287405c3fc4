"""Field alias tables for model responses.

Models do not reliably follow the requested key names: prompts have changed
over time and some providers answer with Portuguese keys or wrap the payload
in an ``analise`` object. Each canonical field maps to the keys accepted for
it, tried in order. Dotted aliases address nested objects. Keys are compared
after case folding and accent stripping, so ``recomendações`` and
``Recomendacoes`` both match ``recomendacoes``.
"""

import unicodedata
from collections.abc import Mapping
from typing import Any

RESULT_ALIASES: dict[str, tuple[str, ...]] = {
    "summary": (
        "summary",
        "resumo",
        "sumario",
        "overview",
        "analise.resumo",
        "analysis.summary",
    ),
    "outOfRange": (
        "outOfRange",
        "out_of_range",
        "abnormalValues",
        "abnormal_values",
        "valoresForaReferencia",
        "valoresAlterados",
        "analise.valoresAlterados",
        "analise.valoresForaReferencia",
        "analysis.outOfRange",
    ),
    "recommendations": (
        "recommendations",
        "recomendacoes",
        "sugestoes",
        "analise.recomendacoes",
        "analysis.recommendations",
    ),
}

ENTRY_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("name", "marker", "test", "test_name", "nome", "marcador", "exame", "parametro"),
    "value": ("value", "result", "valor", "resultado", "valorEncontrado", "measured"),
    "unit": ("unit", "units", "unidade", "unidadeMedida"),
    "reference": (
        "reference",
        "reference_range",
        "referenceRange",
        "range",
        "referencia",
        "valorReferencia",
        "valoresReferencia",
        "faixaReferencia",
    ),
    "interpretation": (
        "interpretation",
        "significance",
        "meaning",
        "clinical_significance",
        "interpretacao",
        "significado",
        "significadoClinico",
    ),
}

RECOMMENDATION_TEXT_ALIASES: tuple[str, ...] = (
    "recommendation",
    "text",
    "description",
    "recomendacao",
    "descricao",
)


def normalize_key(key: str) -> str:
    """Case-fold a key and strip accents and separators."""
    decomposed = unicodedata.normalize("NFKD", key)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold().replace("_", "").replace("-", "").replace(" ", "")


def _get_key(data: Mapping[str, Any], key: str) -> tuple[bool, Any]:
    if key in data:
        return True, data[key]
    wanted = normalize_key(key)
    for candidate, value in data.items():
        if isinstance(candidate, str) and normalize_key(candidate) == wanted:
            return True, value
    return False, None


def lookup(data: Mapping[str, Any], aliases: tuple[str, ...]) -> Any:
    """Return the first non-null value found under any alias, else None."""
    for alias in aliases:
        node: Any = data
        found = True
        for part in alias.split("."):
            if not isinstance(node, Mapping):
                found = False
                break
            found, node = _get_key(node, part)
            if not found:
                break
        if found and node is not None:
            return node
    return None
