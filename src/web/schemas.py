"""Pydantic v2 request and response schemas for the processing API.

Field names on the wire are camelCase (``processingType``, ``inputLength``)
to match the browser client; Python attributes stay snake_case.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ProcessTextRequest(CamelModel):
    """Body of POST /api/process-text."""
    text: Optional[str] = None
    processing_type: Optional[str] = Field(None, alias="processingType")
    custom_prompt: Optional[str] = Field(None, alias="customPrompt")
    model: Optional[str] = None


class TextResultResponse(CamelModel):
    success: bool = True
    result: str
    input_length: int = Field(..., alias="inputLength")
    model: str


class FileResultResponse(CamelModel):
    success: bool = True
    download_url: str = Field(..., alias="downloadUrl")
    file_name: str = Field(..., alias="fileName")
    row_count: int = Field(..., alias="rowCount")
    model: str


class ModelsResponse(CamelModel):
    success: bool = True
    models: List[str]
    default_model: str = Field(..., alias="defaultModel")


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
