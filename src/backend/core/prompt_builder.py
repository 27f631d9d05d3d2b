"""Build the prompt text sent to the inference backend."""

import json
import logging
from typing import Any, Optional, Sequence, Union

from ..config.prompts import PromptLoader
from .models import ProcessingMode, TabularRow

logger = logging.getLogger(__name__)

Payload = Union[str, Sequence[TabularRow]]


def render_payload(payload: Payload) -> str:
    """Render free text as-is and tabular rows as a pretty-printed JSON array."""
    if isinstance(payload, str):
        return payload
    return json.dumps(list(payload), indent=2, ensure_ascii=False, default=_json_default)


def _json_default(value: Any) -> str:
    # Dates and times from spreadsheet cells
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


class PromptBuilder:
    """Turns (mode, custom instruction, payload) into a single prompt string."""

    def __init__(self, loader: Optional[PromptLoader] = None):
        self.loader = loader or PromptLoader()

    def build(
        self,
        mode: ProcessingMode,
        custom_instruction: Optional[str],
        payload: Payload
    ) -> str:
        """
        Build the prompt for a processing mode.

        Args:
            mode: Processing mode
            custom_instruction: Caller instruction, used by custom mode only
            payload: Free text or tabular rows

        Returns:
            Prompt text
        """
        rendered = render_payload(payload)

        if mode is ProcessingMode.CUSTOM:
            return f"{custom_instruction or ''}\n\n{rendered}"
        if mode is ProcessingMode.RAW:
            return rendered

        prompt = self.loader.format_prompt(mode.value, rendered)
        logger.debug(f"Built {mode.value} prompt: {len(prompt)} chars")
        return prompt


def build_prompt(
    mode: ProcessingMode,
    custom_instruction: Optional[str],
    payload: Payload
) -> str:
    """Module-level shortcut using the bundled templates."""
    return PromptBuilder().build(mode, custom_instruction, payload)
