"""
Read-only views of completed attempts for the results screen.

Nothing here writes to the store; everything is derived from the terminal
fields of a completed `ExamSession`.
"""
import logging
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from exam_session.errors import InvalidOperationError
from exam_session.models import ExamSession, QuestionPerformance

logger = logging.getLogger(__name__)


def _percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


class ExamResult(BaseModel):
    """What the results viewer consumes."""

    model_config = ConfigDict(frozen=True)

    exam_id: str
    module: str
    exam_type: str
    score: int
    total_questions: int
    percentage: int
    correct_count: int
    incorrect_count: int
    unanswered_count: int
    time_spent_seconds: int
    question_performance: Tuple[QuestionPerformance, ...]

    @classmethod
    def from_session(cls, session: ExamSession) -> "ExamResult":
        if not session.is_completed:
            raise InvalidOperationError(f"Exam {session.id} has not been completed")
        performance = session.question_performance
        unanswered = sum(1 for p in performance if p.user_answer is None)
        return cls(
            exam_id=session.id,
            module=session.module,
            exam_type=session.exam_type.value,
            score=session.score,
            total_questions=session.total_questions,
            percentage=_percent(session.score, session.total_questions),
            correct_count=session.score,
            incorrect_count=session.total_questions - session.score,
            unanswered_count=unanswered,
            time_spent_seconds=session.time_spent_seconds,
            question_performance=performance,
        )

    @property
    def incorrect_questions(self) -> List[QuestionPerformance]:
        return [p for p in self.question_performance if not p.is_correct]


def module_breakdown(session: ExamSession) -> Dict[str, Dict[str, float]]:
    """
    Correct/total per question module, for combined exams.

    Returns:
        {module: {"total": int, "correct": int, "accuracy_percent": float}}
    """
    if not session.is_completed:
        raise InvalidOperationError(f"Exam {session.id} has not been completed")
    stats: Dict[str, Dict[str, float]] = {}
    for question, outcome in zip(session.questions_data, session.question_performance):
        module = question.module or session.module
        entry = stats.setdefault(module, {"total": 0, "correct": 0})
        entry["total"] += 1
        if outcome.is_correct:
            entry["correct"] += 1
    for entry in stats.values():
        entry["accuracy_percent"] = entry["correct"] / entry["total"] * 100
    return stats


def weak_modules(breakdown: Dict[str, Dict[str, float]], top_n: int = 3) -> List[Tuple[str, float]]:
    """Modules ranked by lag factor ((100 - accuracy) weighted by question count), weakest first."""
    lags = [
        (module, (100 - entry["accuracy_percent"]) * entry["total"])
        for module, entry in breakdown.items()
    ]
    lags.sort(key=lambda x: x[1], reverse=True)
    return lags[:top_n]


class QuestionChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_id: str
    question: str
    before_correct: bool
    after_correct: bool

    @property
    def change(self) -> str:
        if self.before_correct == self.after_correct:
            return "unchanged"
        return "improved" if self.after_correct else "regressed"


class ExamComparison(BaseModel):
    model_config = ConfigDict(frozen=True)

    score_before: int
    score_after: int
    score_change: int
    minutes_before: int
    minutes_after: int
    minutes_change: int
    shared_questions: Tuple[QuestionChange, ...]

    def count(self, change: str) -> int:
        return sum(1 for q in self.shared_questions if q.change == change)


def compare_results(earlier: ExamResult, later: ExamResult) -> ExamComparison:
    """Score (in percent) and time (in minutes) deltas, plus questions both attempts share."""
    minutes_before = round(earlier.time_spent_seconds / 60)
    minutes_after = round(later.time_spent_seconds / 60)
    before_by_id: Dict[str, QuestionPerformance] = {p.question_id: p for p in earlier.question_performance}
    shared = []
    for p in later.question_performance:
        prior: Optional[QuestionPerformance] = before_by_id.get(p.question_id)
        if prior is None:
            continue
        shared.append(
            QuestionChange(
                question_id=p.question_id,
                question=p.question,
                before_correct=prior.is_correct,
                after_correct=p.is_correct,
            )
        )
    return ExamComparison(
        score_before=earlier.percentage,
        score_after=later.percentage,
        score_change=later.percentage - earlier.percentage,
        minutes_before=minutes_before,
        minutes_after=minutes_after,
        minutes_change=minutes_after - minutes_before,
        shared_questions=tuple(shared),
    )
