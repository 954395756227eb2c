"""Pacing sections for long exams. Pure functions; drive progress banners only."""
import math
from typing import Tuple

from engine import LONG_EXAM_THRESHOLD, SECTION_SIZE


def is_long_exam(total_questions: int) -> bool:
    return total_questions >= LONG_EXAM_THRESHOLD


def section_number(index: int) -> int:
    """1-based section holding the 0-based question index."""
    return index // SECTION_SIZE + 1


def is_section_boundary(index: int, total_questions: int) -> bool:
    return is_long_exam(total_questions) and index % SECTION_SIZE == 0 and index > 0


def section_count(total_questions: int) -> int:
    return math.ceil(total_questions / SECTION_SIZE)


def section_range(section: int, total_questions: int) -> Tuple[int, int]:
    """1-based inclusive question numbers covered by a section, e.g. (51, 100)."""
    first = (section - 1) * SECTION_SIZE + 1
    last = min(section * SECTION_SIZE, total_questions)
    return first, last
