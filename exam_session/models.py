"""
Exam session records as stored in the `mock_exams` table.

Pydantic v2 models: rows fetched from Supabase are validated on the way in,
so a session that breaks one of the record invariants never reaches the engine.
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from engine import OPTION_LABELS
from exam_session.errors import InvalidSessionError

logger = logging.getLogger(__name__)

TERMINAL_FIELDS = ("completed_at", "score", "time_spent_seconds", "question_performance")


class ExamType(str, Enum):
    STANDARD = "standard"
    STRICT = "strict"
    PRACTICE = "practice"


class ExamStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def _normalize_label(value: Any) -> str:
    label = str(value).strip().upper()
    if label not in OPTION_LABELS:
        raise ValueError(f"option must be one of {OPTION_LABELS}, got {value!r}")
    return label


def answers_to_row(answers: Dict[int, str]) -> Dict[str, str]:
    """JSON objects only carry string keys."""
    return {str(k): v for k, v in sorted(answers.items())}


class QuestionRecord(BaseModel):
    """
    One question of a finalized question set.

    Extra columns of the source row (document_id, status, approved_at, ...) are
    kept so that `questions_data` round-trips unchanged.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str
    question: str = Field(..., min_length=1)
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_answer: str
    module: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("correct_answer", mode="before")
    @classmethod
    def validate_correct_answer(cls, v: Any) -> str:
        return _normalize_label(v)

    def option(self, label: str) -> str:
        return getattr(self, f"option_{label.lower()}")


class QuestionPerformance(BaseModel):
    """Per-question outcome written once at submission."""

    model_config = ConfigDict(frozen=True)

    question_id: str
    question: str
    user_answer: Optional[str] = None
    correct_answer: str
    is_correct: bool
    time_spent: Optional[int] = None


class ExamSession(BaseModel):
    """
    A single exam attempt.

    Attributes:
        questions_data:  Ordered, immutable question set fixed at creation.
        answers:         {question index: option label}; added/overwritten only.
        started_at:      Creation timestamp, the timer's reference epoch.
        current_index:   Last persisted question pointer, where a reload resumes.
        completed_at, score, time_spent_seconds, question_performance:
                         Unset while in progress; set together exactly once.
    """

    id: str
    user_id: str
    module: str
    exam_type: ExamType
    time_limit_minutes: Optional[int] = Field(None, gt=0)
    total_questions: int = Field(..., gt=0)
    questions_data: Tuple[QuestionRecord, ...]
    answers: Dict[int, str] = Field(default_factory=dict)
    current_index: int = Field(0, ge=0)
    started_at: datetime
    status: ExamStatus = ExamStatus.IN_PROGRESS
    completed_at: Optional[datetime] = None
    score: Optional[int] = None
    time_spent_seconds: Optional[int] = None
    question_performance: Optional[Tuple[QuestionPerformance, ...]] = None

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> str:
        return str(v)

    @field_validator("answers", mode="before")
    @classmethod
    def coerce_answers(cls, v: Any) -> Dict[int, str]:
        if v is None:
            return {}
        return {int(k): _normalize_label(opt) for k, opt in dict(v).items()}

    @field_validator("current_index", mode="before")
    @classmethod
    def default_index(cls, v: Any) -> int:
        return 0 if v is None else v

    @field_validator("started_at", "completed_at")
    @classmethod
    def ensure_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def check_invariants(self) -> "ExamSession":
        if self.total_questions != len(self.questions_data):
            raise ValueError(
                f"total_questions={self.total_questions} but question set has "
                f"{len(self.questions_data)} entries"
            )
        if (self.time_limit_minutes is None) != (self.exam_type == ExamType.PRACTICE):
            raise ValueError("time_limit_minutes must be set for timed exams and absent for practice")
        bad = [i for i in self.answers if not 0 <= i < self.total_questions]
        if bad:
            raise ValueError(f"answer indices out of range: {bad}")
        if self.current_index >= self.total_questions:
            raise ValueError(f"current_index {self.current_index} out of range")
        terminal = [getattr(self, name) for name in TERMINAL_FIELDS]
        if self.status == ExamStatus.COMPLETED and any(v is None for v in terminal):
            raise ValueError("completed session is missing result fields")
        if self.status == ExamStatus.IN_PROGRESS and any(v is not None for v in terminal):
            raise ValueError("in-progress session already carries result fields")
        return self

    @property
    def is_timed(self) -> bool:
        return self.exam_type != ExamType.PRACTICE

    @property
    def is_completed(self) -> bool:
        return self.status == ExamStatus.COMPLETED

    @property
    def time_limit_seconds(self) -> Optional[int]:
        if self.time_limit_minutes is None:
            return None
        return self.time_limit_minutes * 60

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ExamSession":
        """Build from a Supabase row, raising InvalidSessionError on a bad record."""
        data = dict(row)
        if data.get("status", ExamStatus.IN_PROGRESS.value) == ExamStatus.IN_PROGRESS.value:
            # time_spent_seconds defaults to 0 in the table
            for name in TERMINAL_FIELDS:
                if not data.get(name):
                    data[name] = None
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise InvalidSessionError(f"Invalid exam session {row.get('id')}: {e}") from e

    def to_row(self) -> Dict[str, Any]:
        row = self.model_dump(mode="json")
        row["answers"] = answers_to_row(self.answers)
        return row
