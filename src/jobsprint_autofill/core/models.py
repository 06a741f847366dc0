"""Core data models for the autofill engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FieldKind(str, Enum):
    """Structural kind of a fillable field, independent of UI technology."""
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO_GROUP = "radio-group"
    CHECKBOX = "checkbox"
    EMAIL = "email"
    TEL = "tel"
    URL = "url"
    NUMBER = "number"


class AnswerType(str, Enum):
    """How a stored answer is mapped onto a field."""
    EXACT = "exact"
    CHOICE = "choice"
    TEXT = "text"


class SessionState(str, Enum):
    """States of an autofill session."""
    IDLE = "idle"
    SCANNING = "scanning"
    RUNNING = "running"
    WAITING_USER = "waiting_user"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.ERROR, SessionState.CANCELLED)


class Decision(str, Enum):
    """User response to an approval request."""
    APPROVE = "approve"
    REJECT = "reject"
    PAUSE = "pause"


class ControlClass(str, Enum):
    """Safety classification of an action control (button)."""
    DANGEROUS = "dangerous"
    PROCEED = "proceed"
    NEUTRAL = "neutral"


class FormField(BaseModel):
    """A single fillable element discovered on a form surface."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(..., description="Surface-unique field identifier")
    kind: FieldKind = Field(FieldKind.TEXT, description="Structural kind")
    options: List[str] = Field(default_factory=list, description="Available options, in display order")
    opaque_ref: Any = Field(None, description="Handle into the form surface, never interpreted by the engine")

    # Question sources, in extraction priority order
    label: Optional[str] = Field(None, description="Explicitly associated label or caption")
    description: Optional[str] = Field(None, description="Accessibility-style short description")
    placeholder: Optional[str] = Field(None, description="Placeholder or hint text")
    container_text: Optional[str] = Field(None, description="Text of the surrounding container")

    name: Optional[str] = Field(None, description="Field name attribute")
    required: bool = Field(False, description="Whether the surface marks the field as required")


class QAEntry(BaseModel):
    """A persisted question/answer pair."""
    question: str = Field(..., description="Question text, the storage key")
    answer: str = Field(..., description="Answer text")
    answer_type: AnswerType = Field(AnswerType.TEXT, description="Declared answer type")
    timestamp: datetime = Field(default_factory=_utcnow, description="Last write time")

    @field_validator("question")
    @classmethod
    def normalize_question(cls, value: str) -> str:
        return normalize_question_key(value)


def normalize_question_key(question: str) -> str:
    """Whitespace-normalize a question for exact-match storage keying."""
    return " ".join(question.split())


class MatchResult(BaseModel):
    """Best knowledge base entry for a prompt."""
    entry: QAEntry
    score: float = Field(..., ge=0.0, le=1.0)


class SessionOptions(BaseModel):
    """Per-session behavior switches."""
    auto_playback: bool = Field(False, description="Apply matches without user approval")
    auto_proceed: bool = Field(False, description="Invoke a proceed control after completion")


class Progress(BaseModel):
    """Progress snapshot of a session."""
    current: int
    total: int
    processed: int = 0
    skipped: int = 0


class ApprovalRequest(BaseModel):
    """What the user sees when a session suspends for approval."""
    session_id: str
    question: str
    proposed_answer: str
    answer_type: AnswerType
    available_options: List[str] = Field(default_factory=list)
    similarity: float
    progress: Progress


class ErrorReport(BaseModel):
    """Context attached to a session that ended in the error state."""
    session_id: str
    surface_id: str
    last_index: int
    message: str
    error_type: str
    timestamp: datetime = Field(default_factory=_utcnow)


class SessionEvent(BaseModel):
    """Entry on the session progress/log channel."""
    timestamp: datetime = Field(default_factory=_utcnow)
    level: str
    message: str
    session_id: str
    data: Dict[str, Any] = Field(default_factory=dict)


class Session(BaseModel):
    """One resolution run over the fields of one surface."""
    id: str = Field(default_factory=lambda: f"session_{uuid4().hex[:12]}")
    surface_id: str
    state: SessionState = SessionState.IDLE
    fields: List[FormField] = Field(default_factory=list)
    current_index: int = 0
    processed: Set[int] = Field(default_factory=set)
    skipped: Set[int] = Field(default_factory=set)
    options: SessionOptions = Field(default_factory=SessionOptions)
    applied_values: Dict[int, str] = Field(default_factory=dict)
    error: Optional[ErrorReport] = None
    created_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None

    def progress(self) -> Progress:
        return Progress(
            current=self.current_index,
            total=len(self.fields),
            processed=len(self.processed),
            skipped=len(self.skipped),
        )


@dataclass
class Control:
    """An action control (button) exposed by a form surface."""
    text: str
    visible: bool = True
    enabled: bool = True
    on_invoke: Optional[Callable[[], Optional[Awaitable[None]]]] = field(default=None, repr=False)
    ref: Any = field(default=None, repr=False)

    async def invoke(self) -> None:
        if self.on_invoke is None:
            return
        result = self.on_invoke()
        if result is not None:
            await result
