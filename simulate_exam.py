"""
Simulate one exam attempt end to end: create a session from the approved pool,
answer some right, some wrong, skip the rest, submit and print the result.

Run: python simulate_exam.py --user demo [--module numerical] [--exam-type standard] [--minutes 60]
"""
import argparse
import logging
import random
import sys
from pathlib import Path

path = Path(__file__).resolve().parent
if str(path) not in sys.path:
    sys.path.insert(0, str(path))

from engine import COMBINED_MODULE, EXAM_TYPES, MODULES, OPTION_LABELS
from exam_session.builder import ExamBuilder
from exam_session.config import configure_logging
from exam_session.database import DatabaseClient
from exam_session.errors import ExamSessionError
from exam_session.runner import ExamRunner

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Simulate a mock exam attempt against the session engine.")
    parser.add_argument("--user", required=True, help="User ID that owns the attempt")
    parser.add_argument("--module", default=COMBINED_MODULE, choices=[COMBINED_MODULE, *MODULES])
    parser.add_argument("--exam-type", default="standard", choices=EXAM_TYPES)
    parser.add_argument("--minutes", type=int, default=None, help="Time limit (timed exams; default 60)")
    parser.add_argument("--count", type=int, default=None, help="Question count (default from presets)")
    parser.add_argument("--correct-ratio", type=float, default=0.5, help="Fraction to answer correctly (default 0.5)")
    parser.add_argument("--wrong-ratio", type=float, default=0.3, help="Fraction to answer wrongly (default 0.3)")
    parser.add_argument("--seed", type=int, default=None, help="Seed question selection and answers")
    return parser


def main(argv=None, database=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    minutes = args.minutes
    if args.exam_type != "practice" and minutes is None:
        minutes = 60
    rng = random.Random(args.seed)
    database = database or DatabaseClient()

    try:
        session = ExamBuilder(database, seed=args.seed).create_exam(
            args.user, args.module, args.exam_type, minutes, args.count
        )
    except (ExamSessionError, ValueError) as e:
        print(f"Could not create exam: {e}")
        return 1

    correct_ratio = max(0.0, min(1.0, args.correct_ratio))
    wrong_ratio = max(0.0, min(1.0 - correct_ratio, args.wrong_ratio))

    with ExamRunner.load(database, session.id, start_sources=False) as runner:
        for i, q in enumerate(session.questions_data):
            r = rng.random()
            if r < correct_ratio:
                runner.answer(q.correct_answer, index=i)
            elif r < correct_ratio + wrong_ratio:
                runner.answer(rng.choice([o for o in OPTION_LABELS if o != q.correct_answer]), index=i)
        runner.save_now()
        try:
            runner.submit()
        except ExamSessionError as e:
            print(f"Submission failed: {e}")
            return 1
        result = runner.result()

    print()
    print("=" * 60)
    print(f"MOCK EXAM SIMULATION  {result.module} / {result.exam_type}")
    print("=" * 60)
    print(f"  Exam ID:     {result.exam_id}")
    print(f"  Questions:   {result.total_questions}")
    print(f"  Correct:     {result.correct_count}")
    print(f"  Incorrect:   {result.incorrect_count}  (of which unanswered: {result.unanswered_count})")
    print(f"  Score:       {result.score}/{result.total_questions}  ({result.percentage}%)")
    print(f"  Time spent:  {result.time_spent_seconds}s")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
