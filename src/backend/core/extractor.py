"""Recover the JSON array embedded in a free-form model reply.

Models asked for "only a JSON array" still wrap it in prose or code fences.
The array is located with a first-'[' / last-']' slice. That heuristic is not
a balanced-bracket parse: a stray ']' in prose after the array widens the
slice and makes it unparseable. When that happens a string-aware depth scan
is tried from each '[' in turn, accepting the first balanced array that is
empty or holds only objects. The original slice is what gets reported on
failure.
"""

import json
import logging
from typing import Any, List, Optional

from .exceptions import InvalidJsonError, NoJsonArrayFoundError

logger = logging.getLogger(__name__)

_LOG_PREVIEW_CHARS = 500


def locate_array_span(raw_text: str) -> Optional[tuple[int, int]]:
    """Return (start, end) of the first '[' and last ']' inclusive, or None."""
    start = raw_text.find("[")
    end = raw_text.rfind("]")
    if start == -1 or end == -1 or end < start:
        return None
    return start, end


def find_balanced_array(raw_text: str, start: int) -> Optional[str]:
    """
    Scan from ``start`` for the ']' that closes the '[' at ``start``.

    Brackets inside JSON string literals are ignored.

    Args:
        raw_text: Full reply text
        start: Index of an opening '['

    Returns:
        The balanced substring, or None if the array never closes
    """
    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(raw_text)):
        char = raw_text[index]
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
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return raw_text[start:index + 1]

    return None


def extract_json_array(raw_text: str) -> List[Any]:
    """
    Extract and parse the JSON array from a model reply.

    Args:
        raw_text: Raw reply text, possibly with surrounding commentary

    Returns:
        Parsed list. Length is not checked against the input row count.

    Raises:
        NoJsonArrayFoundError: No '[' ... ']' span in the text
        InvalidJsonError: The span does not parse as a JSON array
    """
    span = locate_array_span(raw_text or "")
    if span is None:
        logger.error(f"No JSON array in model reply: {(raw_text or '')[:_LOG_PREVIEW_CHARS]}")
        raise NoJsonArrayFoundError(
            "No JSON array found in model reply",
            details={"raw_text": raw_text},
        )

    start, end = span
    candidate = raw_text[start:end + 1]

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        parsed = _scan_for_records(raw_text, start, candidate)
        if parsed is None:
            logger.error(
                f"Model reply JSON could not be parsed ({e}): {candidate[:_LOG_PREVIEW_CHARS]}"
            )
            raise InvalidJsonError(
                f"Invalid JSON in model reply: {e}",
                details={"candidate": candidate, "raw_text": raw_text},
            ) from e
        logger.warning("Recovered JSON array with bracket-depth scan after slice failed to parse")

    if not isinstance(parsed, list):
        raise InvalidJsonError(
            "Model reply JSON is not an array",
            details={"candidate": candidate},
        )

    logger.debug(f"Extracted {len(parsed)} records from model reply")
    return parsed


def _is_record_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, dict) for item in value)


def _scan_for_records(raw_text: str, start: int, candidate: str) -> Optional[List[Any]]:
    """
    Try every balanced array from ``start`` onward.

    Only an empty array or an array of objects is accepted, so bracketed
    values in leading prose such as ``[1]`` are skipped.
    """
    position = start
    while position != -1:
        balanced = find_balanced_array(raw_text, position)
        if balanced and balanced != candidate:
            parsed = _parse_or_none(balanced)
            if parsed is not None and _is_record_list(parsed):
                return parsed
        position = raw_text.find("[", position + 1)
    return None


def _parse_or_none(text: str) -> Optional[List[Any]]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, list) else None
