"""Merge AI records back onto the source spreadsheet rows by position."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .models import AIRecord, ReconcilePolicy, TabularRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AIField:
    """An output column the AI is expected to fill."""
    column: str
    aliases: Tuple[str, ...] = ()
    required: bool = True


# Canonical output columns, in output order.
AI_FIELDS: Tuple[AIField, ...] = (
    AIField("Module", aliases=("Category", "Component", "Module Name")),
    AIField(
        "Summarized Problem",
        aliases=("Summary", "Problem Summary", "Cleaned Problem", "Cleaned Description", "Description"),
    ),
    AIField("Severity", aliases=("Severity Level", "Priority")),
    AIField(
        "Severity Reason",
        aliases=("Severity Rationale", "Reason", "Rationale", "Severity Explanation"),
        required=False,
    ),
)


def normalize_key(key: Any) -> str:
    """Compare keys ignoring case, spacing and punctuation."""
    return re.sub(r"[^0-9a-z]", "", str(key).casefold())


def lookup_field(record: Mapping[str, Any], ai_field: AIField) -> Optional[Any]:
    """Find a field's value under its canonical name or any alias."""
    if ai_field.column in record:
        return record[ai_field.column]

    wanted = [normalize_key(ai_field.column)] + [normalize_key(alias) for alias in ai_field.aliases]
    normalized = {normalize_key(key): value for key, value in record.items()}
    for key in wanted:
        if key in normalized:
            return normalized[key]
    return None


def _cell_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def overlay(
    original_rows: Sequence[TabularRow],
    ai_records: Sequence[Any],
    fields: Sequence[AIField] = AI_FIELDS
) -> List[TabularRow]:
    """
    Copy AI fields onto each source row.

    Every source row is kept. A row with no matching AI record, or whose
    record is not an object, gets empty strings for the required fields.
    Extra AI records beyond the source rows are dropped.

    Args:
        original_rows: Decoded spreadsheet rows
        ai_records: Parsed JSON array from the model reply
        fields: AI columns to copy

    Returns:
        New list of merged rows; inputs are not mutated
    """
    merged: List[TabularRow] = []
    missing = 0

    for index, row in enumerate(original_rows):
        record = ai_records[index] if index < len(ai_records) else None
        if not isinstance(record, Mapping):
            record = {}
            missing += 1

        result = dict(row)
        for ai_field in fields:
            value = lookup_field(record, ai_field)
            if value is None and not ai_field.required:
                continue
            result[ai_field.column] = _cell_value(value)
        merged.append(result)

    if missing:
        logger.warning(f"{missing} of {len(original_rows)} rows had no AI record; filled with blanks")
    if len(ai_records) > len(original_rows):
        logger.warning(
            f"Dropped {len(ai_records) - len(original_rows)} AI records beyond the "
            f"{len(original_rows)} source rows"
        )

    return merged


def replace(
    original_rows: Sequence[TabularRow],
    ai_records: Sequence[Any]
) -> List[TabularRow]:
    """
    Use the AI records as the output rows.

    Length mismatches with the source rows are not corrected. Items that are
    not JSON objects are wrapped as ``{"Result": item}``.
    """
    if len(ai_records) != len(original_rows):
        logger.warning(
            f"Replace policy: {len(ai_records)} AI records for {len(original_rows)} source rows"
        )

    rows: List[TabularRow] = []
    for record in ai_records:
        if isinstance(record, Mapping):
            rows.append({str(key): _cell_value(value) for key, value in record.items()})
        else:
            rows.append({"Result": _cell_value(record)})
    return rows


POLICIES: Dict[ReconcilePolicy, Callable[[Sequence[TabularRow], Sequence[Any]], List[TabularRow]]] = {
    ReconcilePolicy.OVERLAY: overlay,
    ReconcilePolicy.REPLACE: replace,
}


def reconcile(
    original_rows: Sequence[TabularRow],
    ai_records: Sequence[AIRecord],
    policy: ReconcilePolicy = ReconcilePolicy.OVERLAY
) -> List[TabularRow]:
    """Merge AI records with source rows under the given policy."""
    return POLICIES[ReconcilePolicy(policy)](original_rows, ai_records)
