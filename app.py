"""Practice exam platform: Streamlit front-end for the exam session engine."""
import logging
import sys
from pathlib import Path

# Ensure project root is in path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import streamlit as st

from db import get_supabase
from engine import COMBINED_MODULE, DEFAULT_PRESET_INDEX, MODULES, OPTION_LABELS, TIME_LIMIT_PRESETS
from exam_session.builder import ExamBuilder
from exam_session.config import configure_logging
from exam_session.database import DatabaseClient
from exam_session.errors import ExamSessionError, InsufficientQuestionsError, SubmissionError
from exam_session.results import ExamResult, module_breakdown, weak_modules
from exam_session.runner import ExamRunner, RunnerPhase
from exam_session.timer import format_clock

configure_logging()
logger = logging.getLogger(__name__)

PAGES = ["Start Exam", "Exam", "Results", "History"]
EXAM_TYPE_LABELS = {
    "standard": "Standard: timed, review and change answers",
    "strict": "Strict: timed, no going back",
    "practice": "Practice: untimed, pause and resume",
}

st.set_page_config(page_title="Mock Exams", layout="wide")
st.sidebar.title("Mock Exams")
default_page = st.query_params.get("page", "Start Exam")
if default_page not in PAGES:
    default_page = "Start Exam"
page = st.sidebar.radio("Navigate", PAGES, index=PAGES.index(default_page), label_visibility="collapsed")

user_id = st.sidebar.text_input("User ID", value=st.session_state.get("user_id", ""))
st.session_state["user_id"] = user_id


def _database() -> DatabaseClient:
    return DatabaseClient(get_supabase())


def _go(target: str) -> None:
    st.query_params["page"] = target
    st.rerun()


def _drop_runner() -> None:
    runner = st.session_state.pop("runner", None)
    if runner is not None:
        runner.close()


# ----- Start Exam -----
if page == "Start Exam":
    st.header("Mock Exam Setup")
    module = st.selectbox("Module", [COMBINED_MODULE, *MODULES])
    exam_type = st.radio("Exam type", list(EXAM_TYPE_LABELS), format_func=EXAM_TYPE_LABELS.get)
    time_limit = None
    question_count = None
    if exam_type != "practice":
        preset = st.selectbox(
            "Time limit",
            range(len(TIME_LIMIT_PRESETS)),
            index=DEFAULT_PRESET_INDEX,
            format_func=lambda i: f"{TIME_LIMIT_PRESETS[i][0]} mins ({TIME_LIMIT_PRESETS[i][1]} questions)",
        )
        time_limit = TIME_LIMIT_PRESETS[preset][0]
    if module == COMBINED_MODULE and st.checkbox("Full 300-question mock (timed exams use the selected limit)"):
        question_count = 300

    if st.button("Start Mock Exam", type="primary", disabled=not user_id):
        try:
            session = ExamBuilder(_database()).create_exam(user_id, module, exam_type, time_limit, question_count)
        except InsufficientQuestionsError as e:
            st.warning(str(e))
        except Exception as e:
            st.error(f"Failed to start exam: {e}")
        else:
            _drop_runner()
            st.session_state["exam_id"] = session.id
            _go("Exam")

# ----- Exam -----
elif page == "Exam":
    exam_id = st.session_state.get("exam_id")
    if not exam_id:
        st.info("No exam selected. Start one or resume from History.")
        st.stop()

    runner = st.session_state.get("runner")
    if runner is None or runner.exam_id != exam_id:
        _drop_runner()
        try:
            runner = ExamRunner.load(_database(), exam_id)
        except ExamSessionError as e:
            st.error(f"Failed to load exam: {e}")
            st.session_state.pop("exam_id", None)
            st.stop()
        st.session_state["runner"] = runner

    if runner.phase == RunnerPhase.COMPLETED:
        _go("Results")

    @st.fragment(run_every="1s")
    def _clock():
        snap = runner.snapshot()
        if snap["phase"] == RunnerPhase.COMPLETED.value:
            st.success("Time's up! Exam auto-submitted.")
            st.rerun()
        if snap["last_error"]:
            st.error(f"Submission failed: {snap['last_error']}. Press 'Submit exam' to retry.")
        if snap["remaining_seconds"] is not None:
            st.sidebar.metric("Time left", snap["clock"], help=f"urgency: {snap['urgency']}")

    _clock()

    snap = runner.snapshot()
    session = runner.session
    idx = snap["current_index"]
    n = snap["total_questions"]
    q = session.questions_data[idx]

    st.sidebar.progress(snap["answered_count"] / n)
    st.sidebar.caption(f"{snap['answered_count']}/{n} answered · {len(snap['marked'])} marked")
    if snap["is_long_exam"]:
        first, last = snap["section_range"]
        st.sidebar.caption(f"Section {snap['section']} of {snap['section_count']} · Questions {first}-{last}")
    if snap["is_section_boundary"]:
        st.info(f"Section {snap['section']}: you've completed {snap['answered_count'] * 100 // n}% of the exam.")

    st.subheader(f"Question {idx + 1} of {n}")
    st.write(q.question)
    current = snap["answers"].get(idx)
    choice = st.radio(
        "Choose one:",
        OPTION_LABELS,
        format_func=lambda label: f"{label}. {q.option(label)}",
        index=OPTION_LABELS.index(current) if current else None,
        key=f"q_{exam_id}_{idx}",
    )
    if choice and choice != current:
        try:
            runner.answer(choice)
        except ExamSessionError as e:
            st.warning(str(e))

    marked = st.checkbox("Mark for review", value=idx in snap["marked"], key=f"mark_{exam_id}_{idx}")
    if marked != (idx in snap["marked"]):
        runner.mark_for_review(idx, marked)

    col1, col2, col3, col4 = st.columns([1, 1, 1, 2])
    with col1:
        if st.button("Previous", disabled=not snap["can_go_back"]):
            runner.previous()
            st.rerun()
    with col2:
        if st.button("Next", disabled=idx >= n - 1):
            runner.next()
            st.rerun()
    with col3:
        if snap["exam_type"] == "practice" and st.button("Pause & Save"):
            saved = runner.pause()
            st.session_state.pop("runner", None)
            st.session_state.pop("exam_id", None)
            st.toast("Exam paused. You can resume from History." if saved else "Exam paused.")
            _go("History")
    with col4:
        if n - snap["answered_count"]:
            st.caption(f"{n - snap['answered_count']} unanswered questions will be marked as incorrect.")
        if st.button("Submit exam", type="primary"):
            try:
                runner.submit()
            except SubmissionError as e:
                st.error(f"Failed to submit exam: {e}")
            else:
                _go("Results")

# ----- Results -----
elif page == "Results":
    exam_id = st.session_state.get("exam_id")
    if not exam_id:
        st.info("No exam selected.")
        st.stop()
    try:
        session = _database().load_session(exam_id)
        result = ExamResult.from_session(session)
    except ExamSessionError as e:
        st.error(f"Failed to load results: {e}")
        st.stop()
    _drop_runner()

    st.header(f"Exam Results: {result.module}")
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Score", f"{result.percentage}%", f"{result.score}/{result.total_questions}")
    col2.metric("Incorrect", result.incorrect_count)
    col3.metric("Unanswered", result.unanswered_count)
    col4.metric("Time taken", format_clock(result.time_spent_seconds))

    breakdown = module_breakdown(session)
    if len(breakdown) > 1:
        st.subheader("By module")
        for module, stats in breakdown.items():
            st.write(f"{module}: {stats['correct']}/{stats['total']} ({stats['accuracy_percent']:.0f}%)")
        st.caption("Focus next on: " + ", ".join(m for m, _ in weak_modules(breakdown)))

    st.subheader("Answer Review")
    for i, p in enumerate(result.question_performance):
        mark = "✓" if p.is_correct else "✗"
        with st.expander(f"{mark} Question {i + 1}"):
            st.write(p.question)
            st.write(f"Your answer: {p.user_answer or 'not answered'} · Correct: {p.correct_answer}")

# ----- History -----
elif page == "History":
    st.header("History")
    if not user_id:
        st.info("Enter your user ID in the sidebar.")
        st.stop()
    db = _database()
    for status, label in (("in_progress", "Resume"), ("completed", "View")):
        st.subheader("In progress" if status == "in_progress" else "Completed")
        rows = db.list_sessions(user_id, status=status)
        if not rows:
            st.caption("Nothing here yet.")
        for row in rows:
            summary = f"{row['module']} · {row['exam_type']} · {row['total_questions']} questions"
            if status == "completed":
                summary += f" · {row['score']}/{row['total_questions']}"
            col1, col2 = st.columns([4, 1])
            col1.write(summary)
            if col2.button(label, key=f"{status}_{row['id']}"):
                st.session_state["exam_id"] = row["id"]
                _go("Exam" if status == "in_progress" else "Results")
