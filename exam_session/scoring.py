"""
Final scoring for an exam attempt.

One point per correct answer. An index missing from the answers never equals
a correct answer, so unanswered questions always count as wrong.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from exam_session.models import ExamSession, QuestionPerformance, QuestionRecord

logger = logging.getLogger(__name__)


class SubmissionResult(BaseModel):
    """The terminal fields, plus the final answers, written by `DatabaseClient.finalize_session`."""

    model_config = ConfigDict(frozen=True)

    score: int
    time_spent_seconds: int
    question_performance: List[QuestionPerformance]
    completed_at: datetime
    answers: Dict[int, str]
    auto_submitted: bool = False


def calculate_score(questions: Sequence[QuestionRecord], answers: Dict[int, str]) -> int:
    return sum(1 for i, q in enumerate(questions) if answers.get(i) == q.correct_answer)


def build_performance(
    questions: Sequence[QuestionRecord],
    answers: Dict[int, str],
) -> List[QuestionPerformance]:
    performance = []
    for i, q in enumerate(questions):
        user_answer = answers.get(i)
        performance.append(
            QuestionPerformance(
                question_id=q.id,
                question=q.question,
                user_answer=user_answer,
                correct_answer=q.correct_answer,
                is_correct=user_answer == q.correct_answer,
            )
        )
    return performance


def time_spent_seconds(session: ExamSession, now: datetime, remaining: Optional[int]) -> int:
    """
    Timed modes: time limit minus the remaining time at submission.
    Practice: wall clock since `started_at`.
    """
    if session.is_timed:
        return session.time_limit_seconds - (remaining or 0)
    return max(0, int((now - session.started_at).total_seconds()))


def score_session(
    session: ExamSession,
    answers: Dict[int, str],
    now: datetime,
    remaining: Optional[int] = None,
    auto_submitted: bool = False,
) -> SubmissionResult:
    questions = session.questions_data
    result = SubmissionResult(
        score=calculate_score(questions, answers),
        time_spent_seconds=time_spent_seconds(session, now, remaining),
        question_performance=build_performance(questions, answers),
        completed_at=now,
        answers=dict(answers),
        auto_submitted=auto_submitted,
    )
    logger.info(
        f"Scored exam {session.id}: {result.score}/{session.total_questions} "
        f"in {result.time_spent_seconds}s (auto={auto_submitted})"
    )
    return result
