"""The simulation script against the in-memory store."""
from exam_session.models import ExamStatus
from simulate_exam import main


def test_all_correct_practice_run(store, question_pool, fake_supabase, capsys):
    question_pool({"general": 30})
    code = main(["--user", "sim", "--module", "general", "--exam-type", "practice",
                 "--correct-ratio", "1", "--seed", "4"], database=store)

    assert code == 0
    assert len(fake_supabase.finalize_writes()) == 1
    row = fake_supabase.tables["mock_exams"][0]
    assert row["status"] == ExamStatus.COMPLETED.value
    assert row["score"] == 20
    assert "Score:       20/20  (100%)" in capsys.readouterr().out


def test_skipping_everything_scores_zero(store, question_pool, fake_supabase):
    question_pool({"numerical": 50})
    code = main(["--user", "sim", "--module", "numerical", "--minutes", "30",
                 "--correct-ratio", "0", "--wrong-ratio", "0"], database=store)

    assert code == 0
    row = fake_supabase.tables["mock_exams"][0]
    assert row["total_questions"] == 20
    assert row["score"] == 0
    assert row["time_spent_seconds"] == 1800
    assert all(p["user_answer"] is None for p in row["question_performance"])


def test_short_pool_is_reported(store, question_pool, fake_supabase, capsys):
    question_pool({"vocabulary": 5})
    code = main(["--user", "sim", "--module", "vocabulary", "--exam-type", "strict"], database=store)

    assert code == 1
    assert "Not enough approved questions" in capsys.readouterr().out
    assert "mock_exams" not in fake_supabase.tables
