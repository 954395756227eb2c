"""Shared fixtures: an in-memory Supabase stand-in and a controllable clock."""
import copy
import threading
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from exam_session.database import DatabaseClient

T0 = datetime(2025, 11, 15, 10, 0, 0, tzinfo=timezone.utc)

EXAM_DEFAULTS = {
    "status": "in_progress",
    "answers": {},
    "current_index": 0,
    "time_spent_seconds": 0,
    "score": None,
    "completed_at": None,
    "question_performance": None,
    "ai_feedback": None,
}


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self._order = None
        self._limit = None
        self._range = None

    def select(self, *columns, **kwargs):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def limit(self, n):
        self._limit = n
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def _matches(self, row):
        return all(str(row.get(col)) == str(val) for col, val in self.filters)

    def execute(self):
        with self.db.lock:
            self.db.attempts.append((self.table, self.op))
            self.db.maybe_fail(self.op)
            rows = self.db.tables.setdefault(self.table, [])
            matched = [] if self.op == "insert" else [r for r in rows if self._matches(r)]
            # (table, op, payload, filters, rows touched)
            self.db.calls.append(
                (self.table, self.op, copy.deepcopy(self.payload), list(self.filters), 1 if self.op == "insert" else len(matched))
            )

            if self.op == "insert":
                new_row = dict(EXAM_DEFAULTS) if self.table == "mock_exams" else {}
                new_row.update(copy.deepcopy(self.payload))
                new_row.setdefault("id", str(uuid.uuid4()))
                new_row.setdefault("started_at", self.db.now().isoformat())
                rows.append(new_row)
                return FakeResponse([copy.deepcopy(new_row)])

            if self.op == "update":
                for r in matched:
                    r.update(copy.deepcopy(self.payload))
                return FakeResponse(copy.deepcopy(matched))

            if self._order:
                column, desc = self._order
                matched.sort(key=lambda r: r.get(column) or "", reverse=desc)
            if self._range:
                start, end = self._range
                matched = matched[start:end + 1]
            if self._limit is not None:
                matched = matched[: self._limit]
            return FakeResponse(copy.deepcopy(matched))


class FakeSupabase:
    """Enough of the supabase-py query builder for DatabaseClient."""

    def __init__(self, now=lambda: T0):
        self.tables = {}
        self.calls = []  # successful requests only
        self.attempts = []
        self.lock = threading.RLock()
        self.now = now
        self._failures = {}

    def table(self, name):
        return FakeQuery(self, name)

    def fail(self, op, times=None):
        """Make the next `times` calls of `op` raise (forever when None)."""
        self._failures[op] = times

    def recover(self, op):
        self._failures.pop(op, None)

    def maybe_fail(self, op):
        if op not in self._failures:
            return
        remaining = self._failures[op]
        if remaining is not None:
            if remaining <= 1:
                self._failures.pop(op)
            else:
                self._failures[op] = remaining - 1
        raise ConnectionError(f"simulated {op} failure")

    def finalize_writes(self):
        """Updates that actually completed a row."""
        return [
            c for c in self.calls
            if c[1] == "update" and c[2] and c[2].get("status") == "completed" and c[4]
        ]

    def answer_writes(self):
        """Autosave and pause writes (answers only)."""
        return [c for c in self.calls if c[1] == "update" and c[2] and "answers" in c[2] and "status" not in c[2]]


class FakeClock:
    def __init__(self, start=T0):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, seconds):
        self.current += timedelta(seconds=seconds)
        return self.current

    def set(self, moment):
        self.current = moment


def question_rows(n, module="numerical", prefix="q"):
    return [
        {
            "id": f"{prefix}-{module}-{i}",
            "question": f"{module} question {i}",
            "option_a": "alpha",
            "option_b": "beta",
            "option_c": "gamma",
            "option_d": "delta",
            "correct_answer": "ABCD"[i % 4],
            "module": module,
            "status": "approved",
            "document_id": "doc-1",
        }
        for i in range(n)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_supabase(clock):
    return FakeSupabase(now=clock)


@pytest.fixture
def store(fake_supabase):
    return DatabaseClient(fake_supabase)


@pytest.fixture
def make_exam(fake_supabase):
    """Insert a mock_exams row directly and return its id."""

    def _make(exam_type="standard", total=40, time_limit=None, started_at=T0, answers=None, module="numerical"):
        if time_limit is None and exam_type != "practice":
            time_limit = 60
        row = dict(EXAM_DEFAULTS)
        row.update(
            {
                "id": str(uuid.uuid4()),
                "user_id": "user-1",
                "module": module,
                "exam_type": exam_type,
                "time_limit_minutes": time_limit,
                "total_questions": total,
                "questions_data": question_rows(total, module),
                "answers": {str(k): v for k, v in (answers or {}).items()},
                "started_at": started_at.isoformat(),
            }
        )
        fake_supabase.tables.setdefault("mock_exams", []).append(row)
        return row["id"]

    return _make


@pytest.fixture
def question_pool(fake_supabase):
    """Seed the approved question table: {module: count}."""

    def _seed(counts, status="approved"):
        rows = fake_supabase.tables.setdefault("extracted_questions", [])
        for module, n in counts.items():
            for row in question_rows(n, module, prefix=status):
                row["status"] = status
                rows.append(row)

    return _seed
