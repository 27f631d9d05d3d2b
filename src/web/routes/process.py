"""Text and file processing routes."""

import logging
from typing import AsyncIterator, Optional, Union

from fastapi import APIRouter, File, Form, UploadFile

from backend.core.exceptions import InputMissingError, InvalidOptionError
from backend.serializers import OutputFormat, SerializerFactory
from ..dependencies import ProcessorDep, StorageServiceDep
from ..schemas import FileResultResponse, ProcessTextRequest, TextResultResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["process"])


async def file_generator(file: UploadFile, chunk_size: int) -> AsyncIterator[bytes]:
    """Generate chunks from uploaded file."""
    try:
        while chunk := await file.read(chunk_size):
            yield chunk
    finally:
        await file.close()


def _parse_output_format(value: Optional[str]) -> OutputFormat:
    try:
        return SerializerFactory.parse_format(value)
    except ValueError as e:
        raise InvalidOptionError(str(e)) from e


@router.post("/process-text", response_model=TextResultResponse)
async def process_text(body: ProcessTextRequest, processor: ProcessorDep) -> TextResultResponse:
    """Run free text through the selected processing mode."""
    return await processor.process_text(
        body.text, body.processing_type, body.custom_prompt, body.model
    )


@router.post("/process", response_model=Union[FileResultResponse, TextResultResponse])
async def process_file(
    processor: ProcessorDep,
    storage: StorageServiceDep,
    file: Optional[UploadFile] = File(None, description="Spreadsheet or text file"),
    text: Optional[str] = Form(None),
    processing_type: Optional[str] = Form(None, alias="processingType"),
    custom_prompt: Optional[str] = Form(None, alias="customPrompt"),
    model: Optional[str] = Form(None),
    output_format: Optional[str] = Form(None, alias="outputFormat"),
) -> Union[FileResultResponse, TextResultResponse]:
    """
    Process an uploaded file, or a ``text`` form field when no file is sent.

    Spreadsheets in row-producing modes answer with a download link; every
    other input answers with the model's text.
    """
    output_format_type = _parse_output_format(output_format)

    if file is None or not file.filename:
        if text and text.strip():
            return await processor.process_text(text, processing_type, custom_prompt, model)
        raise InputMissingError("No file or text provided")

    upload = await storage.save_upload(
        file_generator(file, storage.config.chunk_size), file.filename
    )
    logger.info(f"Received {upload.original_filename} ({upload.size} bytes)")

    return await processor.process_upload(
        upload, processing_type, custom_prompt, model, output_format_type
    )
