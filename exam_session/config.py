"""Environment-driven settings for the exam session engine."""
import logging
import os

from dotenv import load_dotenv

load_dotenv()

EXAM_TABLE = os.getenv("EXAM_TABLE", "mock_exams")
QUESTION_TABLE = os.getenv("QUESTION_TABLE", "extracted_questions")
APPROVED_STATUS = os.getenv("APPROVED_STATUS", "approved")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

# Supabase returns at most this many rows per request
PAGE_SIZE = 1000


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
