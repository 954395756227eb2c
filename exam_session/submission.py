"""
The single terminal transition of an exam attempt.

Every submit, manual or timer-driven, goes through `SubmissionEngine.submit`,
which serializes on one lock. The first call that reaches the store performs
the write; every later call sees the completed session and returns it
untouched. A failed write leaves nothing behind, so a retry starts clean.
"""
import logging
import threading
from datetime import datetime
from typing import Dict, Optional

from exam_session.errors import SubmissionError
from exam_session.models import ExamSession, ExamStatus
from exam_session.scoring import SubmissionResult, score_session

logger = logging.getLogger(__name__)


class SubmissionEngine:

    def __init__(self, store):
        self.store = store
        self._lock = threading.Lock()
        self.completed: Optional[ExamSession] = None
        self.result: Optional[SubmissionResult] = None
        self.writes = 0

    @property
    def is_done(self) -> bool:
        return self.completed is not None

    def submit(
        self,
        session: ExamSession,
        final_answers: Dict[int, str],
        now: datetime,
        remaining: Optional[int] = None,
        auto_submit: bool = False,
    ) -> ExamSession:
        """
        Score and finalize `session`, at most once.

        Returns the completed session. Raises SubmissionError when the write
        fails; the session is then still in progress and may be submitted again.
        """
        with self._lock:
            if self.completed is not None:
                logger.info(f"Exam {session.id} already completed; ignoring submit (auto={auto_submit})")
                return self.completed
            if session.is_completed:
                self.completed = session
                return session

            result = score_session(session, final_answers, now, remaining, auto_submit)
            try:
                changed = self.store.finalize_session(session.id, result)
            except Exception as e:
                logger.error(f"Submission failed for exam {session.id}: {e}")
                raise SubmissionError(f"Submission of exam {session.id} did not take effect") from e
            if not changed:
                # the row was already completed by an earlier write
                logger.warning(f"Exam {session.id} was already finalized in the store")
                try:
                    stored = self.store.load_session(session.id)
                except Exception as e:
                    raise SubmissionError(f"Could not reload finalized exam {session.id}") from e
                if not stored.is_completed:
                    raise SubmissionError(f"Exam {session.id} was not finalized")
                self.completed = stored
                return stored

            self.writes += 1
            self.result = result
            self.completed = session.model_copy(
                update={
                    "answers": dict(final_answers),
                    "status": ExamStatus.COMPLETED,
                    "completed_at": result.completed_at,
                    "score": result.score,
                    "time_spent_seconds": result.time_spent_seconds,
                    "question_performance": tuple(result.question_performance),
                }
            )
            logger.info(
                f"Exam {session.id} completed: {result.score}/{session.total_questions}"
                f"{' (auto-submitted)' if auto_submit else ''}"
            )
            return self.completed
