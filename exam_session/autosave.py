"""
Periodic persistence of in-progress answers.

Failures are logged and swallowed: the next scheduled save retries with the
latest answers, and the user is never interrupted. There is no escalation
after repeated failures, only a counter that shows up in the logs.
"""
import logging
from typing import Dict, Optional

from engine import AUTOSAVE_LONG_SECONDS, AUTOSAVE_SHORT_SECONDS, LONG_EXAM_THRESHOLD

logger = logging.getLogger(__name__)


def autosave_period(total_questions: int) -> int:
    """Seconds between saves; fixed for the life of a session."""
    if total_questions >= LONG_EXAM_THRESHOLD:
        return AUTOSAVE_LONG_SECONDS
    return AUTOSAVE_SHORT_SECONDS


class AutosavePolicy:
    """Writes a session's answers through `store.update_answers` (idempotent overwrite)."""

    def __init__(self, store, exam_id: str, total_questions: int):
        self.store = store
        self.exam_id = exam_id
        self.period = autosave_period(total_questions)
        self.attempts = 0
        self.consecutive_failures = 0
        self.last_saved: Dict[int, str] = {}

    def save(self, answers: Dict[int, str], current_index: Optional[int] = None) -> bool:
        """One persistence attempt. Never raises a persistence error."""
        self.attempts += 1
        snapshot = dict(answers)
        try:
            self.store.update_answers(self.exam_id, snapshot, current_index)
        except Exception as e:
            self.consecutive_failures += 1
            logger.warning(
                f"Autosave failed for exam {self.exam_id} "
                f"({self.consecutive_failures} in a row): {e}"
            )
            return False
        if self.consecutive_failures:
            logger.info(f"Autosave recovered for exam {self.exam_id}")
        self.consecutive_failures = 0
        self.last_saved = snapshot
        logger.debug(f"Autosaved {len(snapshot)} answers for exam {self.exam_id}")
        return True
