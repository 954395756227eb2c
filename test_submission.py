"""Scoring and the exactly-once terminal write."""
from datetime import timedelta

import pytest

from conftest import T0
from exam_session.errors import SubmissionError
from exam_session.scoring import build_performance, calculate_score, score_session, time_spent_seconds
from exam_session.submission import SubmissionEngine

# correct answers cycle A, B, C, D
ANSWERS = {0: "A", 1: "B", 2: "A", 5: "B", 39: "D"}


def test_score_counts_only_matching_answers(store, make_exam):
    session = store.load_session(make_exam(total=40))
    assert calculate_score(session.questions_data, ANSWERS) == 4
    assert calculate_score(session.questions_data, {}) == 0
    full = {i: "ABCD"[i % 4] for i in range(40)}
    assert calculate_score(session.questions_data, full) == 40


def test_unanswered_questions_are_scored_wrong(store, make_exam):
    session = store.load_session(make_exam(total=40))
    performance = build_performance(session.questions_data, ANSWERS)
    assert len(performance) == 40
    assert performance[3].user_answer is None
    assert performance[3].is_correct is False
    assert performance[2].user_answer == "A"
    assert performance[2].correct_answer == "C"
    assert performance[0].question_id == session.questions_data[0].id
    assert sum(p.is_correct for p in performance) == 4


def test_time_spent_for_timed_and_practice(store, make_exam):
    timed = store.load_session(make_exam("standard", time_limit=60))
    assert time_spent_seconds(timed, T0, remaining=600) == 3000
    assert time_spent_seconds(timed, T0, remaining=0) == 3600

    practice = store.load_session(make_exam("practice"))
    assert time_spent_seconds(practice, T0 + timedelta(seconds=125), remaining=None) == 125


def test_score_session_collects_terminal_fields(store, make_exam):
    session = store.load_session(make_exam(total=40))
    result = score_session(session, ANSWERS, T0 + timedelta(minutes=10), remaining=3000, auto_submitted=True)
    assert result.score == 4
    assert result.time_spent_seconds == 600
    assert result.completed_at == T0 + timedelta(minutes=10)
    assert result.auto_submitted


def test_second_submit_is_a_noop(store, make_exam, fake_supabase):
    exam_id = make_exam(total=40)
    session = store.load_session(exam_id)
    engine = SubmissionEngine(store)

    first = engine.submit(session, ANSWERS, T0 + timedelta(minutes=5), remaining=3300)
    second = engine.submit(session, {0: "A"}, T0 + timedelta(minutes=6), remaining=3240, auto_submit=True)

    assert first is second
    assert first.is_completed
    assert first.score == 4
    assert len(fake_supabase.finalize_writes()) == 1
    stored = store.load_session(exam_id)
    assert stored.is_completed
    assert stored.score == 4
    assert stored.time_spent_seconds == 300
    # final answers travel with the terminal write
    assert stored.answers == ANSWERS
    assert engine.writes == 1


def test_failed_write_leaves_the_session_in_progress(store, make_exam, fake_supabase):
    exam_id = make_exam(total=40)
    session = store.load_session(exam_id)
    engine = SubmissionEngine(store)
    fake_supabase.fail("update", times=1)

    with pytest.raises(SubmissionError):
        engine.submit(session, ANSWERS, T0, remaining=3600)
    assert not engine.is_done
    assert not store.load_session(exam_id).is_completed

    completed = engine.submit(session, ANSWERS, T0, remaining=3600)
    assert completed.is_completed
    assert len(fake_supabase.finalize_writes()) == 1


def test_row_already_finalized_elsewhere(store, make_exam, fake_supabase):
    exam_id = make_exam(total=40)
    stale = store.load_session(exam_id)
    SubmissionEngine(store).submit(stale, ANSWERS, T0, remaining=1000)

    other = SubmissionEngine(store)
    result = other.submit(stale, {}, T0, remaining=500)
    assert result.is_completed
    assert result.score == 4
    assert result.time_spent_seconds == 2600
    assert len(fake_supabase.finalize_writes()) == 1
    assert other.writes == 0
    assert other.result is None
    # the second conditional update reached the store but matched no row
    terminal_updates = [c for c in fake_supabase.calls if c[1] == "update" and c[2].get("status") == "completed"]
    assert [c[4] for c in terminal_updates] == [1, 0]
    assert store.load_session(exam_id).answers == ANSWERS
