"""
Exam setup: question selection and session creation.

A combined exam of exactly 300 questions is drawn module by module with fixed
sub-counts, concatenated and shuffled. Any other request is a uniform sample
without replacement from one approved pool. Short pools are refused rather
than producing a smaller exam.
"""
import logging
import random
from typing import List, Optional, Sequence

from engine import (
    COMBINED_DISTRIBUTION,
    COMBINED_EXAM_TOTAL,
    COMBINED_MODULE,
    MODULES,
    PRACTICE_QUESTION_COUNT,
    TIME_LIMIT_PRESETS,
)
from exam_session.errors import InsufficientQuestionsError
from exam_session.models import ExamSession, ExamType, QuestionRecord

logger = logging.getLogger(__name__)


def question_count_for(exam_type: ExamType, time_limit_minutes: Optional[int]) -> int:
    """Default question count of the setup presets."""
    if exam_type == ExamType.PRACTICE:
        return PRACTICE_QUESTION_COUNT
    for minutes, count in TIME_LIMIT_PRESETS:
        if minutes == time_limit_minutes:
            return count
    raise ValueError(f"No preset for a {time_limit_minutes} minute exam; pass question_count")


class ExamBuilder:
    """Creates exam sessions with a finalized question set."""

    def __init__(self, database, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        """
        Args:
            database: object with fetch_approved_questions() and create_session()
            seed:     makes selection and shuffling reproducible; unseeded by default
            rng:      explicit random source (overrides seed)
        """
        self.database = database
        self.rng = rng or random.Random(seed)

    def _sample(self, module: str, pool: Sequence[QuestionRecord], size: int) -> List[QuestionRecord]:
        if len(pool) < size:
            logger.warning(f"Only {len(pool)} approved '{module}' questions available, need {size}")
            raise InsufficientQuestionsError(module, size, len(pool))
        return self.rng.sample(list(pool), size)

    def build_question_set(self, module: str, question_count: int) -> List[QuestionRecord]:
        if question_count <= 0:
            raise ValueError("question_count must be positive")
        if module != COMBINED_MODULE and module not in MODULES:
            raise ValueError(f"Unknown module: {module}")

        if module == COMBINED_MODULE and question_count == COMBINED_EXAM_TOTAL:
            selected: List[QuestionRecord] = []
            for sub_module, count in COMBINED_DISTRIBUTION.items():
                pool = self.database.fetch_approved_questions(sub_module)
                selected.extend(self._sample(sub_module, pool, count))
            self.rng.shuffle(selected)
            logger.info(
                "Combined exam: "
                + ", ".join(f"{m}={c}" for m, c in COMBINED_DISTRIBUTION.items())
            )
            return selected

        pool = self.database.fetch_approved_questions(None if module == COMBINED_MODULE else module)
        return self._sample(module, pool, question_count)

    def create_exam(
        self,
        user_id: str,
        module: str,
        exam_type: str,
        time_limit_minutes: Optional[int] = None,
        question_count: Optional[int] = None,
    ) -> ExamSession:
        """Select questions and insert a new in-progress session."""
        exam_type = ExamType(exam_type)
        if exam_type == ExamType.PRACTICE:
            if time_limit_minutes is not None:
                raise ValueError("Practice exams are untimed")
        elif time_limit_minutes is None or time_limit_minutes <= 0:
            raise ValueError(f"{exam_type.value} exams need a positive time limit")

        if question_count is None:
            question_count = question_count_for(exam_type, time_limit_minutes)

        questions = self.build_question_set(module, question_count)
        return self.database.create_session(
            user_id=user_id,
            module=module,
            exam_type=exam_type.value,
            time_limit_minutes=time_limit_minutes,
            questions=questions,
        )
