"""Main pipeline orchestrator for text and spreadsheet processing.

prompt -> inference -> (tabular only) JSON extraction -> reconciliation.
Encoding and storage of tabular results happen in the web layer.
"""

import logging
import time
from typing import Optional, Sequence, Union

from ..llm.client import OllamaClient
from .exceptions import InputMissingError
from .extractor import extract_json_array
from .models import ProcessingMode, TableResult, TabularRow, TextResult
from .prompt_builder import PromptBuilder, render_payload
from .reconciler import reconcile

logger = logging.getLogger(__name__)


class Pipeline:
    """Stateless request pipeline bound to one inference client."""

    def __init__(
        self,
        client: OllamaClient,
        prompt_builder: Optional[PromptBuilder] = None
    ):
        """
        Initialize the pipeline.

        Args:
            client: Inference client used for every request
            prompt_builder: Prompt builder; defaults to the bundled templates
        """
        self.client = client
        self.prompt_builder = prompt_builder or PromptBuilder()

    async def process_text(
        self,
        text: str,
        mode: ProcessingMode,
        custom_prompt: Optional[str] = None,
        model: Optional[str] = None
    ) -> TextResult:
        """
        Run free text through the model and return the reply text.

        Raises:
            InputMissingError: Text is empty
            InferenceError: Backend call failed
        """
        if not text or not text.strip():
            raise InputMissingError("No text provided")

        prompt = self.prompt_builder.build(mode, custom_prompt, text)
        started = time.monotonic()
        reply = await self.client.generate(prompt, model)

        logger.info(
            f"Processed text: mode={mode.value}, model={reply.model}, "
            f"input={len(text)} chars, reply={len(reply.raw_text)} chars "
            f"in {time.monotonic() - started:.1f}s"
        )
        return TextResult(result=reply.raw_text, input_length=len(text), model=reply.model)

    async def process_rows(
        self,
        rows: Sequence[TabularRow],
        mode: ProcessingMode,
        custom_prompt: Optional[str] = None,
        model: Optional[str] = None
    ) -> TableResult:
        """
        Run spreadsheet rows through the model and merge the answer back.

        Args:
            rows: Decoded spreadsheet rows
            mode: A mode with a reconcile policy (issue_triage or custom)
            custom_prompt: Caller instruction for custom mode
            model: Model identifier

        Returns:
            TableResult with merged rows in input order

        Raises:
            InputMissingError: No data rows
            ValueError: Mode answers with text, not rows
            InferenceError / ExtractionError: Backend or parsing failure
        """
        policy = mode.reconcile_policy
        if policy is None:
            raise ValueError(f"Mode '{mode.value}' does not produce rows")
        if not rows:
            raise InputMissingError("The spreadsheet has no data rows")

        prompt = self.prompt_builder.build(mode, custom_prompt, rows)
        started = time.monotonic()
        reply = await self.client.generate(prompt, model)
        records = extract_json_array(reply.raw_text)
        merged = reconcile(rows, records, policy)

        logger.info(
            f"Processed {len(rows)} rows: mode={mode.value}, model={reply.model}, "
            f"policy={policy.value}, ai_records={len(records)}, "
            f"output_rows={len(merged)} in {time.monotonic() - started:.1f}s"
        )
        return TableResult(
            rows=merged,
            model=reply.model,
            policy=policy,
            source_row_count=len(rows),
            ai_record_count=len(records),
        )

    async def process_table(
        self,
        rows: Sequence[TabularRow],
        mode: ProcessingMode,
        custom_prompt: Optional[str] = None,
        model: Optional[str] = None
    ) -> Union[TableResult, TextResult]:
        """Rows for row-producing modes; otherwise the rows are sent as JSON text."""
        if mode.produces_rows:
            return await self.process_rows(rows, mode, custom_prompt, model)
        if not rows:
            raise InputMissingError("The spreadsheet has no data rows")
        return await self.process_text(render_payload(list(rows)), mode, custom_prompt, model)