"""Typed events accepted by `ExamRunner.dispatch`."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TimerTick:
    pass


@dataclass(frozen=True)
class AutosaveTick:
    pass


@dataclass(frozen=True)
class UserAnswer:
    option: str
    index: Optional[int] = None  # None = current question


@dataclass(frozen=True)
class UserNavigate:
    target_index: int


@dataclass(frozen=True)
class UserMark:
    index: int
    flag: bool = True


@dataclass(frozen=True)
class UserSubmit:
    auto_submit: bool = False


@dataclass(frozen=True)
class UserPause:
    pass
