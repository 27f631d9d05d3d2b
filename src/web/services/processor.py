"""Pipeline adapter for web application integration.

Turns request fields and stored uploads into pipeline calls and shapes the
JSON bodies the routes return. Tabular results are serialized and written to
the download directory; transient uploads are always removed afterwards.
"""

import logging
from typing import Optional, Union

from backend.core.models import ProcessingMode, TableResult, TextResult
from backend.core.pipeline import Pipeline
from backend.serializers import (
    OutputFormat,
    SerializerFactory,
    SpreadsheetDecodeError,
    decode_workbook,
)
from ..schemas import FileResultResponse, TextResultResponse
from ..storage.exceptions import FileValidationError
from ..storage.service import StorageService, StoredUpload

logger = logging.getLogger(__name__)

DOWNLOADS_URL_PREFIX = "/downloads"


def text_response(result: TextResult) -> TextResultResponse:
    return TextResultResponse(
        result=result.result,
        input_length=result.input_length,
        model=result.model,
    )


class PipelineProcessor:
    """Adapter for running the backend pipeline in async web context."""

    def __init__(self, pipeline: Pipeline, storage: StorageService):
        """
        Initialize pipeline processor.

        Args:
            pipeline: Request pipeline bound to the inference client
            storage: Storage service for uploads and results
        """
        self.pipeline = pipeline
        self.storage = storage

    async def process_text(
        self,
        text: Optional[str],
        processing_type: Optional[str],
        custom_prompt: Optional[str] = None,
        model: Optional[str] = None
    ) -> TextResultResponse:
        mode = ProcessingMode.parse(processing_type)
        result = await self.pipeline.process_text(text or "", mode, custom_prompt, model)
        return text_response(result)

    async def process_upload(
        self,
        upload: StoredUpload,
        processing_type: Optional[str],
        custom_prompt: Optional[str] = None,
        model: Optional[str] = None,
        output_format: OutputFormat = OutputFormat.XLSX
    ) -> Union[TextResultResponse, FileResultResponse]:
        """
        Process a stored upload and delete it afterwards.

        Args:
            upload: File written by StorageService.save_upload
            processing_type: Raw processingType field
            custom_prompt: Instruction for custom mode
            model: Model identifier, or None for the configured default
            output_format: Download format for tabular results

        Returns:
            Response body for the route

        Raises:
            FileValidationError: Unreadable spreadsheet or non-UTF-8 text
            ProcessingError: Pipeline failure
            FileOperationError: Result could not be written
        """
        mode = ProcessingMode.parse(processing_type)
        try:
            if self.storage.is_spreadsheet(upload.original_filename):
                return await self._process_spreadsheet(upload, mode, custom_prompt, model, output_format)

            text = await self.storage.read_text(upload.path)
            result = await self.pipeline.process_text(text, mode, custom_prompt, model)
            return text_response(result)
        finally:
            await self.storage.delete_file(upload.path)

    async def _process_spreadsheet(
        self,
        upload: StoredUpload,
        mode: ProcessingMode,
        custom_prompt: Optional[str],
        model: Optional[str],
        output_format: OutputFormat
    ) -> Union[TextResultResponse, FileResultResponse]:
        data = await self.storage.read_bytes(upload.path)
        try:
            rows = decode_workbook(data)
        except SpreadsheetDecodeError as e:
            raise FileValidationError(str(e), {"filename": upload.original_filename}) from e

        logger.info(
            f"Decoded {len(rows)} rows from {upload.original_filename} "
            f"(mode={mode.value}, format={output_format.value})"
        )

        result = await self.pipeline.process_table(rows, mode, custom_prompt, model)
        if isinstance(result, TextResult):
            return text_response(result)

        return await self._store_table(result, upload.original_filename, output_format)

    async def _store_table(
        self,
        result: TableResult,
        original_filename: str,
        output_format: OutputFormat
    ) -> FileResultResponse:
        serializer = SerializerFactory.create(output_format)
        output = serializer.serialize(result.rows, original_filename)
        path = await self.storage.store_output(output.content, result.model, output.filename)

        logger.info(
            f"Stored {output.metadata['row_count']} rows as {path.name} "
            f"({output.size_bytes} bytes, {len(output.metadata['columns'])} columns)"
        )
        return FileResultResponse(
            download_url=f"{DOWNLOADS_URL_PREFIX}/{path.name}",
            file_name=path.name,
            row_count=len(result.rows),
            model=result.model,
        )
