"""
Database operations for exam sessions.
Handles Supabase reads/writes for the `mock_exams` table and the approved question pool.
"""
import logging
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError
from supabase import Client

from exam_session.config import APPROVED_STATUS, EXAM_TABLE, PAGE_SIZE, QUESTION_TABLE
from exam_session.errors import SessionNotFoundError
from exam_session.models import ExamSession, ExamStatus, QuestionRecord, answers_to_row
from exam_session.scoring import SubmissionResult

logger = logging.getLogger(__name__)


class DatabaseClient:
    """Wrapper around a Supabase client with exam-session operations."""

    def __init__(self, client: Optional[Client] = None):
        if client is None:
            from db import get_supabase_uncached

            client = get_supabase_uncached()
        self.client: Client = client

    # ============= Sessions =============

    def load_session(self, exam_id: str) -> ExamSession:
        """
        Fetch one exam session.

        Raises:
            SessionNotFoundError: row missing or the store unreachable.
            InvalidSessionError:  row violates the session invariants.
        """
        try:
            response = self.client.table(EXAM_TABLE).select("*").eq("id", str(exam_id)).limit(1).execute()
        except Exception as e:
            logger.error(f"Error loading exam {exam_id}: {e}")
            raise SessionNotFoundError(str(exam_id), f"could not be loaded ({e})") from e
        if not response.data:
            raise SessionNotFoundError(str(exam_id))
        return ExamSession.from_row(response.data[0])

    def update_answers(self, exam_id: str, answers: Dict[int, str], current_index: Optional[int] = None) -> None:
        """Overwrite the stored answers (and the question pointer when given). Errors propagate to the caller."""
        update_data = {"answers": answers_to_row(answers)}
        if current_index is not None:
            update_data["current_index"] = current_index
        (
            self.client.table(EXAM_TABLE)
            .update(update_data)
            .eq("id", str(exam_id))
            .execute()
        )

    def finalize_session(self, exam_id: str, result: SubmissionResult) -> bool:
        """
        Single row update setting the final answers and every terminal field at once.

        Only matches a row still in progress, so a second finalize is a no-op.
        Returns True if this call completed the row.
        """
        update_data = {
            "status": ExamStatus.COMPLETED.value,
            "answers": answers_to_row(result.answers),
            "completed_at": result.completed_at.isoformat(),
            "score": result.score,
            "time_spent_seconds": result.time_spent_seconds,
            "question_performance": [p.model_dump(mode="json") for p in result.question_performance],
        }
        response = (
            self.client.table(EXAM_TABLE)
            .update(update_data)
            .eq("id", str(exam_id))
            .eq("status", ExamStatus.IN_PROGRESS.value)
            .execute()
        )
        return bool(response.data)

    def create_session(
        self,
        user_id: str,
        module: str,
        exam_type: str,
        time_limit_minutes: Optional[int],
        questions: Sequence[QuestionRecord],
    ) -> ExamSession:
        """Insert a new in-progress session with a finalized question set."""
        session_data = {
            "user_id": str(user_id),
            "module": module,
            "exam_type": exam_type,
            "time_limit_minutes": time_limit_minutes,
            "total_questions": len(questions),
            "questions_data": [q.model_dump(mode="json") for q in questions],
            "answers": {},
            "current_index": 0,
            "status": ExamStatus.IN_PROGRESS.value,
        }
        response = self.client.table(EXAM_TABLE).insert(session_data).execute()
        if not response.data:
            raise RuntimeError("Exam insert returned no row")
        session = ExamSession.from_row(response.data[0])
        logger.info(f"Created exam {session.id}: {module}/{exam_type}, {session.total_questions} questions")
        return session

    def list_sessions(
        self,
        user_id: str,
        status: Optional[str] = None,
        limit: int = 20,
    ) -> List[Dict]:
        """User's exam history, newest first. Rows are returned as stored."""
        try:
            query = self.client.table(EXAM_TABLE).select("*").eq("user_id", str(user_id))
            if status:
                query = query.eq("status", status)
            response = query.order("started_at", desc=True).limit(limit).execute()
            return response.data if response.data else []
        except Exception as e:
            logger.error(f"Error fetching exam history: {e}")
            return []

    # ============= Questions =============

    def fetch_approved_questions(self, module: Optional[str] = None) -> List[QuestionRecord]:
        """Every approved question of a module (all modules when None), paged through."""
        rows: List[Dict] = []
        offset = 0
        while True:
            query = self.client.table(QUESTION_TABLE).select("*").eq("status", APPROVED_STATUS)
            if module:
                query = query.eq("module", module)
            data = query.range(offset, offset + PAGE_SIZE - 1).execute().data or []
            if not data:
                break
            rows.extend(data)
            if len(data) < PAGE_SIZE:
                break
            offset += PAGE_SIZE

        questions = []
        for row in rows:
            try:
                questions.append(QuestionRecord.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed question {row.get('id')}: {e.error_count()} errors")
        logger.info(f"Approved pool for {module or 'all modules'}: {len(questions)} questions")
        return questions


# Singleton instance
_db_client: Optional[DatabaseClient] = None


def get_database() -> DatabaseClient:
    """Get or create database client singleton."""
    global _db_client
    if _db_client is None:
        _db_client = DatabaseClient()
    return _db_client
