"""Dependency injection for FastAPI routes.

Services are created once by the app factory and kept on ``app.state``.
"""

from typing import Annotated

from fastapi import Depends, Request

from backend.llm.client import OllamaClient
from .services.processor import PipelineProcessor
from .storage.service import StorageService


def get_ollama_client(request: Request) -> OllamaClient:
    return request.app.state.client


def get_storage_service(request: Request) -> StorageService:
    return request.app.state.storage


def get_processor(request: Request) -> PipelineProcessor:
    return request.app.state.processor


# Dependency annotations for type hints
OllamaClientDep = Annotated[OllamaClient, Depends(get_ollama_client)]
StorageServiceDep = Annotated[StorageService, Depends(get_storage_service)]
ProcessorDep = Annotated[PipelineProcessor, Depends(get_processor)]
