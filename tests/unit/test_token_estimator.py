"""Tests for token estimation and payload truncation."""

from lab_analysis.budget.estimator import (
    STRING_TRUNCATION_MARKER,
    TRUNCATED_INFO_KEY,
    TRUNCATION_SUMMARY_KEY,
    estimate_tokens,
    serialize,
    truncate,
)


class TestEstimateTokens:
    def test_rounds_up_to_whole_tokens(self) -> None:
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2

    def test_empty_string_costs_nothing(self) -> None:
        assert estimate_tokens("") == 0

    def test_structured_payload_uses_compact_json(self) -> None:
        assert serialize({"a": 1}) == '{"a":1}'
        assert estimate_tokens({"a": 1}) == 2

    def test_non_ascii_counts_characters(self) -> None:
        assert estimate_tokens("ção!") == 1


class TestTruncateUnderBudget:
    def test_returns_payload_unchanged(self) -> None:
        payload = {"summary": "short", "items": [1, 2, 3]}
        assert truncate(payload, 1000) is payload


class TestTruncateRules:
    def test_long_string_is_cut_with_marker(self) -> None:
        result = truncate("x" * 5000, 10)
        assert result == "x" * 1000 + STRING_TRUNCATION_MARKER

    def test_long_array_keeps_head_and_tail_samples(self) -> None:
        items = [f"item-{i:02d}" for i in range(50)]
        result = truncate(items, 1)
        assert len(result) == 20
        assert result[:10] == items[:10]
        assert result[10] == "... 31 more items truncated ..."
        assert result[11:] == items[41:]

    def test_deep_objects_collapse(self) -> None:
        payload = {"a": {"b": {"c": {"d": {"e": "x" * 2000}}}}}
        result = truncate(payload, 100)
        assert result == {"a": {"b": {"c": {"d": "[Object with 1 keys]"}}}}

    def test_wide_objects_keep_first_twenty_keys(self) -> None:
        wide = {f"k{i}": i for i in range(30)}
        payload = {"data": wide, "pad": "x" * 3000}
        result = truncate(payload, 400)
        data = result["data"]
        assert [k for k in data if k != TRUNCATED_INFO_KEY] == [f"k{i}" for i in range(20)]
        assert data[TRUNCATED_INFO_KEY] == "Original object had 30 keys, truncated to 20"
        assert result["pad"] == "x" * 1000 + STRING_TRUNCATION_MARKER

    def test_does_not_mutate_input(self) -> None:
        payload = {"pad": "x" * 3000, "items": list(range(40))}
        truncate(payload, 10)
        assert payload["pad"] == "x" * 3000
        assert payload["items"] == list(range(40))


class TestTruncateAggressive:
    def test_keeps_only_essential_fields(self) -> None:
        payload = {
            "patient_data": {"name": "Ana", "age": 42},
            "lab_results": "y" * 5000,
            "history": list(range(100)),
        }
        result = truncate(payload, 50)
        assert result["patient_data"] == {"name": "Ana", "age": 42}
        assert TRUNCATION_SUMMARY_KEY in result
        assert result["lab_results_summary"] == "Text with 1015 characters"
        assert result["history_summary"] == "Array with 20 items"
        assert "lab_results" not in result


class TestTruncateIdempotence:
    def test_string(self) -> None:
        once = truncate("x" * 5000, 10)
        assert truncate(once, 10) == once

    def test_array(self) -> None:
        once = truncate(list(range(100)), 1)
        assert truncate(once, 1) == once

    def test_wide_object(self) -> None:
        payload = {"data": {f"k{i}": i for i in range(30)}, "pad": "x" * 3000}
        once = truncate(payload, 400)
        assert truncate(once, 400) == once

    def test_aggressive_summary(self) -> None:
        payload = {"patient_data": {"name": "Ana"}, "lab_results": "y" * 5000}
        once = truncate(payload, 20)
        assert truncate(once, 20) == once
