"""Core data models for the backend."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

# One spreadsheet record: column name -> scalar cell value.
TabularRow = Dict[str, Any]
AIRecord = Dict[str, Any]


class ReconcilePolicy(str, Enum):
    """How AI records are merged back onto the source rows."""
    OVERLAY = "overlay"
    REPLACE = "replace"


class ProcessingMode(str, Enum):
    """Named prompt strategy selected by the caller's ``processingType``."""
    CUSTOM = "custom"
    ISSUE_TRIAGE = "issue_triage"
    SUMMARIZE = "summarize"
    ANALYZE = "analyze"
    EXTRACT = "extract"
    TRANSLATE = "translate"
    QUESTIONS = "questions"
    RAW = "raw"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ProcessingMode":
        """Resolve a caller-supplied mode; blank means custom, unknown means raw."""
        if value is None or not value.strip():
            return cls.CUSTOM
        normalized = value.strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            return cls.RAW

    @property
    def reconcile_policy(self) -> Optional[ReconcilePolicy]:
        """Policy used on the tabular path, or None when the mode answers with text."""
        return _MODE_POLICIES.get(self)

    @property
    def produces_rows(self) -> bool:
        return self.reconcile_policy is not None


_MODE_POLICIES = {
    ProcessingMode.ISSUE_TRIAGE: ReconcilePolicy.OVERLAY,
    ProcessingMode.CUSTOM: ReconcilePolicy.REPLACE,
}


@dataclass
class GenerationRequest:
    """A single prompt-completion call to the inference backend."""
    prompt: str
    model: str

    def __post_init__(self):
        if not self.prompt or not self.prompt.strip():
            raise ValueError("GenerationRequest requires a non-empty prompt")
        if not self.model or not self.model.strip():
            raise ValueError("GenerationRequest requires a model identifier")

    def to_payload(self) -> Dict[str, Any]:
        """Request body for the backend's generate endpoint."""
        return {"model": self.model, "prompt": self.prompt, "stream": False}


@dataclass
class GenerationReply:
    """Text returned by the backend. May wrap the structured answer in prose."""
    raw_text: str
    status_code: int
    model: str = ""


@dataclass
class TextResult:
    """Outcome of the plain-text path."""
    result: str
    input_length: int
    model: str


@dataclass
class TableResult:
    """Outcome of the tabular path before it is written to disk."""
    rows: List[TabularRow]
    model: str
    policy: ReconcilePolicy
    source_row_count: int
    ai_record_count: int
