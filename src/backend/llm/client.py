"""Async client for a local Ollama-compatible inference server.

Issues one non-streaming generate call per prompt with a hard wall-clock
bound, and normalizes the reply shape across backend versions.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config.settings import Settings
from ..core.exceptions import (
    BackendError,
    ConnectionFailedError,
    EmptyReplyError,
    InferenceTimeoutError,
    InputMissingError,
    MalformedReplyError,
)
from ..core.models import GenerationReply, GenerationRequest

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate"
TAGS_PATH = "/api/tags"

# Different backend versions name the text field differently.
REPLY_TEXT_FIELDS = ("response", "output", "result")

_LOG_PREVIEW_CHARS = 500


def extract_reply_text(body: Any, raw_body: str) -> str:
    """Pick the reply text from the first known field, else the whole body."""
    if isinstance(body, dict):
        for field_name in REPLY_TEXT_FIELDS:
            value = body.get(field_name)
            if value is not None:
                return value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
    return raw_body


class OllamaClient:
    """Async inference client bound to one backend base URL."""

    def __init__(
        self,
        base_url: str,
        default_model: str,
        timeout_s: float,
        health_timeout_s: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client.

        Args:
            base_url: Backend root, e.g. http://localhost:11434
            default_model: Model used when the caller does not name one
            timeout_s: Upper bound on one generate call, in seconds
            health_timeout_s: Upper bound on tag listing, in seconds
            transport: Optional httpx transport (tests inject a mock)
        """
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self.timeout_s = timeout_s
        self.health_timeout_s = health_timeout_s
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_s),
            transport=transport,
        )

        logger.info(
            f"Inference client initialized: {self.base_url}, "
            f"default model={default_model}, timeout={timeout_s}s"
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "OllamaClient":
        return cls(
            base_url=settings.ollama_base_url,
            default_model=settings.default_model,
            timeout_s=settings.request_timeout_s,
            health_timeout_s=settings.health_timeout_s,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    def build_request(self, prompt: str, model: Optional[str] = None) -> GenerationRequest:
        try:
            return GenerationRequest(prompt=prompt, model=(model or "").strip() or self.default_model)
        except ValueError as e:
            raise InputMissingError(str(e))

    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        timeout_s: Optional[float] = None
    ) -> GenerationReply:
        """
        Send one prompt to the backend and return its text reply.

        Args:
            prompt: Full prompt text
            model: Model identifier; defaults to the configured model
            timeout_s: Override for the wall-clock bound

        Returns:
            GenerationReply with the extracted text

        Raises:
            InferenceTimeoutError: No answer within the bound
            ConnectionFailedError: Transport-level failure
            MalformedReplyError: Body is not JSON
            BackendError: Body carries an explicit error
            EmptyReplyError: Reply text is blank
        """
        request = self.build_request(prompt, model)
        bound = timeout_s or self.timeout_s

        logger.debug(f"Calling {request.model} with prompt of {len(request.prompt)} chars")

        try:
            # wait_for cancels the in-flight request, closing its connection
            response = await asyncio.wait_for(
                self._client.post(
                    GENERATE_PATH,
                    json=request.to_payload(),
                    timeout=httpx.Timeout(bound),
                ),
                timeout=bound,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"Inference request to {request.model} timed out after {bound}s")
            raise InferenceTimeoutError(
                f"Inference backend did not respond within {bound:g} seconds",
                details={"model": request.model, "timeout_s": bound},
            ) from e
        except httpx.TransportError as e:
            logger.error(f"Failed to connect to inference backend: {type(e).__name__}: {e}")
            raise ConnectionFailedError(
                f"Failed to connect to inference backend: {e}",
                details={"base_url": self.base_url, "cause": type(e).__name__},
            ) from e

        raw_body = response.text
        try:
            body = json.loads(raw_body)
        except json.JSONDecodeError as e:
            logger.error(
                f"Backend returned non-JSON body (HTTP {response.status_code}): "
                f"{raw_body[:_LOG_PREVIEW_CHARS]}"
            )
            raise MalformedReplyError(
                "Failed to parse inference backend response",
                details={"status_code": response.status_code, "raw_body": raw_body},
            ) from e

        if isinstance(body, dict) and body.get("error"):
            message = str(body["error"])
            logger.error(f"Backend error for model {request.model}: {message}")
            raise BackendError(
                f"Inference backend error: {message}",
                details={"status_code": response.status_code, "model": request.model},
            )

        text = extract_reply_text(body, raw_body)
        if not text or not text.strip():
            raise EmptyReplyError(
                "Inference backend returned an empty reply",
                details={"status_code": response.status_code, "model": request.model},
            )

        logger.debug(f"Reply from {request.model}: {len(text)} chars")
        return GenerationReply(raw_text=text, status_code=response.status_code, model=request.model)

    async def list_models(self) -> List[Dict[str, Any]]:
        """
        List models installed on the backend.

        Returns:
            Raw model entries from the tag listing

        Raises:
            InferenceError subclasses on transport or payload failure
        """
        try:
            response = await self._client.get(TAGS_PATH, timeout=httpx.Timeout(self.health_timeout_s))
        except httpx.TimeoutException as e:
            raise InferenceTimeoutError(
                f"Inference backend did not list models within {self.health_timeout_s:g} seconds"
            ) from e
        except httpx.TransportError as e:
            raise ConnectionFailedError(f"Failed to connect to inference backend: {e}") from e

        if response.status_code >= 400:
            raise BackendError(f"Model listing returned HTTP {response.status_code}")

        try:
            body = response.json()
        except json.JSONDecodeError as e:
            raise MalformedReplyError("Model listing returned invalid JSON") from e

        if not isinstance(body, dict) or not isinstance(body.get("models", []), list):
            raise MalformedReplyError("Model listing returned an unexpected payload shape")

        return [entry for entry in body.get("models", []) if isinstance(entry, dict)]

    async def list_model_names(self) -> List[str]:
        """Names of installed models, de-duplicated, in backend order."""
        names: List[str] = []
        for entry in await self.list_models():
            name = str(entry.get("name") or entry.get("model") or "").strip()
            if name and name not in names:
                names.append(name)
        return names
