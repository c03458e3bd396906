from __future__ import annotations

import pytest

from scormheatmap.questions import QuestionAggregator, classify_questions
from scormheatmap.report import QUESTION_COLUMNS, hardest_questions, questions_frame, score_distribution


def _build_questiondata() -> dict:
    questions = classify_questions(
        QuestionAggregator().fold([
            {"id": "easy", "result": "correct"},
            {"id": "easy", "result": "correct"},
            {"id": "easy", "result": "wrong"},
            {"id": "hard", "result": "wrong"},
            {"id": "hard", "result": "wrong"},
            {"id": "hard", "result": "correct"},
            {"id": "multi", "learner_response": "A[,]B", "correct_responses": {"0": {"pattern": "A[,]C"}}},
            {"id": "multi", "learner_response": "A[,]C"},
            {"id": "multi", "learner_response": "A[,]C"},
            {"id": "survey", "learner_response": "5"},
        ])
    )
    return {7: {"title": "Quiz", "questions": questions}}


def test_questions_frame_has_one_row_per_question() -> None:
    frame = questions_frame(_build_questiondata())
    assert list(frame.columns) == QUESTION_COLUMNS
    assert frame["question_id"].tolist() == ["easy", "hard", "multi", "survey"]
    easy = frame.set_index("question_id").loc["easy"]
    assert easy["displaytype"] == "boolean"
    assert easy["success_rate"] == pytest.approx(2 / 3)
    multi = frame.set_index("question_id").loc["multi"]
    assert multi["displaytype"] == "spectrum"
    assert multi["mean_percentage"] == pytest.approx((1 / 3 + 1 + 1) / 3)
    assert multi["response_count"] == 3


def test_questions_frame_empty() -> None:
    frame = questions_frame({})
    assert frame.empty
    assert list(frame.columns) == QUESTION_COLUMNS


def test_hardest_questions_ranks_scored_questions() -> None:
    frame = questions_frame(_build_questiondata())
    ranked = hardest_questions(frame, n=2)
    assert ranked["question_id"].tolist() == ["hard", "easy"]
    assert hardest_questions(frame, min_answers=10).empty


def test_score_distribution() -> None:
    result = score_distribution([5, 15, 15, 100, 120])
    assert result["chart_data"]["x"][0] == "0-10"
    assert result["chart_data"]["y"] == [1, 2, 0, 0, 0, 0, 0, 0, 0, 2]
    assert result["value"] == 51.0
    assert result["details"] == "5 scored attempts"


def test_score_distribution_empty() -> None:
    result = score_distribution([])
    assert result["value"] == 0
    assert result["chart_data"]["y"] == [0] * 10
