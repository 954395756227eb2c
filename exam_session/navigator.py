"""Current-question pointer with mode-dependent movement rules."""
import logging
from typing import FrozenSet, Set

from exam_session.errors import InvalidAnswerError

logger = logging.getLogger(__name__)


class Navigator:
    """
    Owns the question pointer for one session.

    In strict mode the pointer never decreases: a backward move is rejected
    (returns False, pointer unchanged) rather than raised. The review marks
    are an independent overlay and play no part in scoring.
    """

    def __init__(self, total_questions: int, strict: bool = False, start_index: int = 0):
        if total_questions <= 0:
            raise ValueError("total_questions must be positive")
        self.total_questions = total_questions
        self.strict = strict
        self._current = max(0, min(start_index, total_questions - 1))
        self._marked: Set[int] = set()

    @property
    def current_index(self) -> int:
        return self._current

    @property
    def marked(self) -> FrozenSet[int]:
        return frozenset(self._marked)

    @property
    def is_first(self) -> bool:
        return self._current == 0

    @property
    def is_last(self) -> bool:
        return self._current == self.total_questions - 1

    def can_move_to(self, target_index: int) -> bool:
        if not 0 <= target_index < self.total_questions:
            return False
        return not (self.strict and target_index < self._current)

    def move_to(self, target_index: int) -> bool:
        """Set the pointer if the move is allowed. Returns whether it moved."""
        if not self.can_move_to(target_index):
            logger.debug(
                f"Rejected move {self._current} -> {target_index} (strict={self.strict})"
            )
            return False
        self._current = target_index
        return True

    def next(self) -> bool:
        return self.move_to(self._current + 1)

    def previous(self) -> bool:
        return self.move_to(self._current - 1)

    def mark_for_review(self, index: int, flag: bool = True) -> None:
        if not 0 <= index < self.total_questions:
            raise InvalidAnswerError(f"question index {index} out of range")
        if flag:
            self._marked.add(index)
        else:
            self._marked.discard(index)

    def is_marked(self, index: int) -> bool:
        return index in self._marked
