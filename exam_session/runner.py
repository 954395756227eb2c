"""
Exam session runner: the one place where an attempt's state changes.

Two periodic sources (the 1 s timer tick and the autosave cadence) and the
user's actions all arrive as typed events through `dispatch()`. State is
guarded by a single lock; the terminal write is further serialized by
`SubmissionEngine`, so a timer-driven auto-submit racing a manual submit
produces exactly one completed write.

The periodic sources are owned by the runner and released by `close()`,
which runs on completion, on pause, on context exit and on load errors.
"""
import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from engine import OPTION_LABELS, TIMER_TICK_SECONDS
from exam_session import sections
from exam_session.autosave import AutosavePolicy
from exam_session.errors import (
    ExamSessionError,
    InvalidAnswerError,
    InvalidOperationError,
    SubmissionError,
)
from exam_session.events import (
    AutosaveTick,
    TimerTick,
    UserAnswer,
    UserMark,
    UserNavigate,
    UserPause,
    UserSubmit,
)
from exam_session.models import ExamSession, ExamType
from exam_session.navigator import Navigator
from exam_session.results import ExamResult
from exam_session.scheduling import RepeatingTimer
from exam_session.submission import SubmissionEngine
from exam_session.timer import ExamTimer, format_clock

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RunnerPhase(str, Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    ERROR = "error"


class ExamRunner:
    """
    Drives one exam attempt from load to completion.

    Usage:
        with ExamRunner.load(DatabaseClient(), exam_id) as runner:
            runner.answer("B")
            runner.next()
            runner.submit()
    """

    def __init__(self, store, exam_id: str, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.exam_id = str(exam_id)
        self.clock = clock
        self.phase = RunnerPhase.LOADING
        self.session: Optional[ExamSession] = None
        self.navigator: Optional[Navigator] = None
        self.timer: Optional[ExamTimer] = None
        self.autosave: Optional[AutosavePolicy] = None
        self.submission = SubmissionEngine(store)
        self.closed = False
        self.auto_submits = 0
        self.last_error: Optional[Exception] = None
        self._lock = threading.RLock()
        self._sources: List[RepeatingTimer] = []
        self._handlers = {
            TimerTick: self._on_timer_tick,
            AutosaveTick: self._on_autosave_tick,
            UserAnswer: self._on_answer,
            UserNavigate: self._on_navigate,
            UserMark: self._on_mark,
            UserSubmit: self._on_submit,
            UserPause: self._on_pause,
        }

    # ============= Lifecycle =============

    @classmethod
    def load(
        cls,
        store,
        exam_id: str,
        clock: Callable[[], datetime] = utc_now,
        start_sources: bool = True,
    ) -> "ExamRunner":
        runner = cls(store, exam_id, clock)
        runner.open()
        if start_sources:
            runner.start()
        return runner

    def open(self) -> None:
        """loading -> in_progress (or completed, read-only); error on a failed load."""
        logger.info(f"Loading exam {self.exam_id}")
        try:
            session = self.store.load_session(self.exam_id)
        except ExamSessionError as e:
            self.phase = RunnerPhase.ERROR
            self.last_error = e
            logger.error(f"Could not load exam {self.exam_id}: {e}")
            self.close()
            raise
        with self._lock:
            self.session = session
            strict = session.exam_type == ExamType.STRICT
            start = session.current_index
            if strict:
                # an answer past the saved pointer was reached before the last save
                start = max(start, max(session.answers, default=0))
            self.navigator = Navigator(session.total_questions, strict=strict, start_index=start)
            self.timer = ExamTimer(session.started_at, session.time_limit_minutes)
            self.autosave = AutosavePolicy(self.store, session.id, session.total_questions)
            if session.is_completed:
                self.submission.completed = session
                self.phase = RunnerPhase.COMPLETED
            else:
                self.phase = RunnerPhase.IN_PROGRESS
        logger.info(
            f"Exam {session.id} loaded: {session.exam_type.value}, {session.total_questions} questions, "
            f"{len(session.answers)} answered, status={session.status.value}"
        )

    def start(self) -> None:
        """Start the countdown (timed modes) and the autosave cadence."""
        with self._lock:
            if self.phase != RunnerPhase.IN_PROGRESS or self.closed:
                return
            if self._sources:
                return
            self.timer.start()
            if self.session.is_timed:
                self._sources.append(
                    RepeatingTimer(TIMER_TICK_SECONDS, lambda: self.dispatch(TimerTick()), f"timer-{self.exam_id}")
                )
            self._sources.append(
                RepeatingTimer(self.autosave.period, lambda: self.dispatch(AutosaveTick()), f"autosave-{self.exam_id}")
            )
            for source in self._sources:
                source.start()
        if self.session.is_timed:
            # a session reloaded after its deadline submits right away
            self.dispatch(TimerTick())

    def close(self) -> None:
        """Release every periodic source. Idempotent."""
        with self._lock:
            if self.closed:
                return
            self.closed = True
            sources = list(self._sources)
            self._sources.clear()
            if self.timer is not None:
                self.timer.stop()
        for source in sources:
            source.cancel()
        logger.debug(f"Runner for exam {self.exam_id} closed")

    def __enter__(self) -> "ExamRunner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def sources_running(self) -> bool:
        return any(s.is_alive and not s.cancelled for s in self._sources)

    # ============= Events =============

    def dispatch(self, event) -> Any:
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unknown event: {event!r}")
        return handler(event)

    def _require_active(self) -> None:
        if self.closed or self.phase != RunnerPhase.IN_PROGRESS:
            raise InvalidOperationError(f"Exam {self.exam_id} is not in progress (phase={self.phase.value})")

    def _on_timer_tick(self, event: TimerTick) -> Optional[int]:
        with self._lock:
            if self.closed or self.phase != RunnerPhase.IN_PROGRESS:
                return None
            expired_now = self.timer.tick(self.clock())
            remaining = self.timer.remaining
            if expired_now:
                self.auto_submits += 1
        if expired_now:
            logger.info(f"Time is up for exam {self.exam_id}; auto-submitting")
            try:
                self._submit(auto_submit=True)
            except SubmissionError as e:
                # left for the user to retry
                logger.error(f"Auto-submit failed for exam {self.exam_id}: {e}")
        return remaining

    def _on_autosave_tick(self, event: AutosaveTick) -> bool:
        with self._lock:
            if self.closed or self.phase != RunnerPhase.IN_PROGRESS:
                return False
            answers = dict(self.session.answers)
            index = self.navigator.current_index
        return self.autosave.save(answers, index)

    def _on_answer(self, event: UserAnswer) -> None:
        with self._lock:
            self._require_active()
            if self.timer.expired:
                raise InvalidOperationError("Time is up; answers can no longer change")
            index = self.navigator.current_index if event.index is None else event.index
            if not 0 <= index < self.session.total_questions:
                raise InvalidAnswerError(f"question index {index} out of range")
            label = str(event.option).strip().upper()
            if label not in OPTION_LABELS:
                raise InvalidAnswerError(f"option must be one of {OPTION_LABELS}, got {event.option!r}")
            if self.navigator.strict and index < self.navigator.current_index:
                raise InvalidOperationError("Strict mode: earlier questions are closed")
            self.session.answers[index] = label

    def _on_navigate(self, event: UserNavigate) -> bool:
        with self._lock:
            self._require_active()
            before = self.navigator.current_index
            moved = self.navigator.move_to(event.target_index)
            strict_advance = self.navigator.strict and self.navigator.current_index > before
            answers = dict(self.session.answers)
            index = self.navigator.current_index
        if strict_advance:
            # questions left behind stay closed across a reload
            self.autosave.save(answers, index)
        return moved

    def _on_mark(self, event: UserMark) -> None:
        with self._lock:
            self._require_active()
            self.navigator.mark_for_review(event.index, event.flag)

    def _on_submit(self, event: UserSubmit) -> ExamSession:
        return self._submit(auto_submit=event.auto_submit)

    def _on_pause(self, event: UserPause) -> bool:
        with self._lock:
            self._require_active()
            if self.session.exam_type != ExamType.PRACTICE:
                raise InvalidOperationError("Only practice exams can be paused")
            answers = dict(self.session.answers)
            index = self.navigator.current_index
        saved = self.autosave.save(answers, index)
        logger.info(f"Exam {self.exam_id} paused (saved={saved})")
        self.close()
        return saved

    def _submit(self, auto_submit: bool) -> ExamSession:
        with self._lock:
            if self.phase == RunnerPhase.COMPLETED:
                return self.session
            if self.closed or self.phase not in (RunnerPhase.IN_PROGRESS, RunnerPhase.SUBMITTING):
                raise InvalidOperationError(f"Exam {self.exam_id} cannot be submitted (phase={self.phase.value})")
            self.phase = RunnerPhase.SUBMITTING
            # a manual retry after a failed auto-submit is still forced by expiry
            auto_submit = auto_submit or self.timer.expired
            session = self.session
            answers = dict(session.answers)
            now = self.clock()
            remaining = self.timer.remaining_at(now)
        try:
            completed = self.submission.submit(session, answers, now, remaining, auto_submit)
        except SubmissionError as e:
            with self._lock:
                self.last_error = e
                if not self.submission.is_done:
                    self.phase = RunnerPhase.IN_PROGRESS
            raise
        with self._lock:
            self.session = completed
            self.phase = RunnerPhase.COMPLETED
            self.last_error = None
        self.close()
        return completed

    # ============= User-facing helpers =============

    def answer(self, option: str, index: Optional[int] = None) -> None:
        self.dispatch(UserAnswer(option=option, index=index))

    def move_to(self, target_index: int) -> bool:
        return self.dispatch(UserNavigate(target_index))

    def next(self) -> bool:
        return self.move_to(self.navigator.current_index + 1)

    def previous(self) -> bool:
        return self.move_to(self.navigator.current_index - 1)

    def mark_for_review(self, index: Optional[int] = None, flag: bool = True) -> None:
        if index is None:
            index = self.navigator.current_index
        self.dispatch(UserMark(index, flag))

    def submit(self) -> ExamSession:
        return self.dispatch(UserSubmit())

    def pause(self) -> bool:
        return self.dispatch(UserPause())

    def tick(self) -> Optional[int]:
        return self.dispatch(TimerTick())

    def save_now(self) -> bool:
        return self.dispatch(AutosaveTick())

    # ============= Read side =============

    def result(self) -> ExamResult:
        with self._lock:
            if self.phase != RunnerPhase.COMPLETED:
                raise InvalidOperationError(f"Exam {self.exam_id} has not been submitted")
            return ExamResult.from_session(self.session)

    def snapshot(self) -> Dict[str, Any]:
        """Everything a UI needs to render the current state."""
        with self._lock:
            session = self.session
            if session is None:
                return {"phase": self.phase.value}
            index = self.navigator.current_index
            total = session.total_questions
            remaining = self.timer.remaining if session.is_timed else None
            current_section = sections.section_number(index)
            return {
                "phase": self.phase.value,
                "exam_id": session.id,
                "exam_type": session.exam_type.value,
                "module": session.module,
                "current_index": index,
                "total_questions": total,
                "answers": dict(session.answers),
                "answered_count": len(session.answers),
                "marked": sorted(self.navigator.marked),
                "timer_state": self.timer.state.value,
                "remaining_seconds": remaining,
                "clock": format_clock(remaining) if remaining is not None else None,
                "urgency": self.timer.urgency.value if self.timer.urgency else None,
                "is_long_exam": sections.is_long_exam(total),
                "section": current_section,
                "section_count": sections.section_count(total),
                "section_range": sections.section_range(current_section, total),
                "is_section_boundary": sections.is_section_boundary(index, total),
                "can_go_back": self.navigator.can_move_to(index - 1),
                "autosave_period": self.autosave.period,
                "last_error": str(self.last_error) if self.last_error else None,
            }
