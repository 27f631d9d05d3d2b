"""Tests for positional reconciliation of AI records with source rows."""

import json

from backend.core.models import ReconcilePolicy
from backend.core.reconciler import (
    AI_FIELDS,
    AIField,
    lookup_field,
    normalize_key,
    overlay,
    reconcile,
    replace,
)

REQUIRED_COLUMNS = ["Module", "Summarized Problem", "Severity"]


def _rows():
    return [
        {"Title": "battery drains", "Problem": "loses 20% per hour"},
        {"Title": "camera blurry", "Problem": "photos out of focus"},
        {"Title": "wifi drops", "Problem": "disconnects every 5 min"},
    ]


class TestOverlay:

    def test_keeps_original_keys_and_adds_ai_fields(self):
        records = [
            {"Module": "Battery", "Summarized Problem": "Drains fast.", "Severity": "High"},
            {"Module": "Camera", "Summarized Problem": "Blurry photos.", "Severity": "Medium"},
            {"Module": "Connectivity", "Summarized Problem": "Wi-Fi drops.", "Severity": "High"},
        ]

        merged = overlay(_rows(), records)

        assert len(merged) == 3
        for original, row in zip(_rows(), merged):
            for key, value in original.items():
                assert row[key] == value
        assert merged[1]["Module"] == "Camera"
        assert list(merged[0].keys()) == ["Title", "Problem", "Module", "Summarized Problem", "Severity"]

    def test_missing_records_get_empty_strings(self):
        merged = overlay(_rows(), [{"Module": "Battery", "Severity": "Low"}])

        assert merged[0]["Module"] == "Battery"
        assert merged[0]["Summarized Problem"] == ""
        for row in merged[1:]:
            for column in REQUIRED_COLUMNS:
                assert row[column] == ""
            assert "Severity Reason" not in row

    def test_non_object_record_is_blank(self):
        merged = overlay(_rows()[:1], ["not an object"])

        assert all(merged[0][column] == "" for column in REQUIRED_COLUMNS)

    def test_extra_records_are_dropped(self):
        records = [{"Module": str(i)} for i in range(5)]

        merged = overlay(_rows(), records)

        assert [row["Module"] for row in merged] == ["0", "1", "2"]

    def test_ai_fields_win_on_collision(self):
        rows = [{"Title": "t", "Severity": "P3"}]

        merged = overlay(rows, [{"Severity": "Critical"}])

        assert merged[0]["Severity"] == "Critical"

    def test_inputs_not_mutated(self):
        rows = _rows()

        overlay(rows, [{"Module": "Battery"}])

        assert rows == _rows()

    def test_aliases(self):
        records = [{
            "module": "Battery",
            "SummarizedProblem": "Drains fast.",
            "severity_level": "High",
            "Severity Rationale": "Affects daily use.",
        }]

        merged = overlay(_rows()[:1], records)

        assert merged[0]["Module"] == "Battery"
        assert merged[0]["Summarized Problem"] == "Drains fast."
        assert merged[0]["Severity"] == "High"
        assert merged[0]["Severity Reason"] == "Affects daily use."

    def test_null_values_become_empty(self):
        merged = overlay(_rows()[:1], [{"Module": None, "Severity": 3}])

        assert merged[0]["Module"] == ""
        assert merged[0]["Severity"] == 3

    def test_custom_fields(self):
        fields = (AIField("Label", aliases=("Tag",)),)

        merged = overlay([{"id": 1}], [{"tag": "x"}], fields=fields)

        assert merged == [{"id": 1, "Label": "x"}]


class TestReplace:

    def test_records_used_verbatim(self):
        records = [{"Title": "a", "Extra": 1}]

        assert replace(_rows(), records) == [{"Title": "a", "Extra": 1}]

    def test_non_objects_wrapped(self):
        assert replace([], ["yes", 2]) == [{"Result": "yes"}, {"Result": 2}]

    def test_nested_values_stringified(self):
        merged = replace([], [{"tags": ["a", "b"]}])

        assert merged[0]["tags"] == '["a", "b"]'

    def test_nested_objects_written_as_json(self):
        merged = replace([], [{"meta": {"a": 1, "note": "Überhitzung"}}])

        assert json.loads(merged[0]["meta"]) == {"a": 1, "note": "Überhitzung"}
        assert "Überhitzung" in merged[0]["meta"]


class TestReconcile:

    def test_dispatches_on_policy(self):
        records = [{"Module": "Battery"}]

        assert reconcile(_rows(), records, ReconcilePolicy.REPLACE) == [{"Module": "Battery"}]
        assert len(reconcile(_rows(), records, ReconcilePolicy.OVERLAY)) == 3

    def test_accepts_policy_value(self):
        assert reconcile([{"a": 1}], [{"b": 2}], "replace") == [{"b": 2}]


class TestFieldLookup:

    def test_normalize_key(self):
        assert normalize_key("Summarized Problem") == normalize_key("summarized_problem")
        assert normalize_key(" Severity-Level ") == "severitylevel"

    def test_exact_name_preferred(self):
        module = AI_FIELDS[0]

        assert lookup_field({"Module": "A", "Category": "B"}, module) == "A"
        assert lookup_field({"Category": "B"}, module) == "B"
        assert lookup_field({"Other": "C"}, module) is None
