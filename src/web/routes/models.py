"""Model listing route proxying the backend's tag listing."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from backend.core.exceptions import InferenceError
from ..dependencies import OllamaClientDep
from ..schemas import ErrorResponse, ModelsResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["models"])


@router.get("/models", response_model=ModelsResponse, responses={502: {"model": ErrorResponse}})
async def list_models(client: OllamaClientDep):
    """List models installed on the inference backend."""
    try:
        names = await client.list_model_names()
    except InferenceError as e:
        logger.error(f"Model listing failed: {e}")
        return JSONResponse(
            status_code=502,
            content=ErrorResponse(error=e.user_message).model_dump(),
        )
    return ModelsResponse(models=names, default_model=client.default_model)
