"""Tests for the pure scoring rules."""
import pytest

from sabia.errors import EmptyAreaError, InvalidAnswerError
from sabia.schemas import AreaResult, DiagnosticQuestion, Mission, SubjectArea
from sabia.scoring import (
    average_score,
    classify_difficulty,
    round_half_up,
    score_area,
    score_mission,
    score_tier,
)


def _questions(n, area=SubjectArea.mathematics):
    return [
        DiagnosticQuestion(id=i + 1, area=area, prompt=f"q{i}", options=["a", "b", "c", "d"], correct_option_index=0)
        for i in range(n)
    ]


@pytest.mark.parametrize("n,k,expected", [(10, 8, 80), (3, 1, 33), (3, 2, 67), (8, 1, 13), (1, 0, 0), (4, 4, 100)])
def test_score_area_is_rounded_percentage(n, k, expected):
    questions = _questions(n)
    answers = {q.id: 0 for q in questions[:k]}
    answers.update({q.id: 1 for q in questions[k:]})
    assert score_area(answers, questions) == expected


def test_score_area_rounds_half_up():
    # 1/8 = 12.5% must become 13, not banker's 12
    assert round_half_up(100, 8) == 13
    assert round_half_up(250, 100) == 3


def test_unanswered_questions_count_as_incorrect():
    questions = _questions(4)
    assert score_area({1: 0, 2: 0}, questions) == 50


def test_score_area_empty_raises():
    with pytest.raises(EmptyAreaError) as exc:
        score_area({}, [], SubjectArea.arts)
    assert exc.value.area == "arts"


def test_scenario_a_eight_of_ten_math_questions():
    questions = _questions(10)
    answers = {q.id: (0 if i < 8 else 2) for i, q in enumerate(questions)}
    score = score_area(answers, questions)
    assert score == 80
    assert classify_difficulty(score) == 3


@pytest.mark.parametrize("score,tier", [(0, 1), (49, 1), (50, 2), (79, 2), (80, 3), (100, 3)])
def test_classify_difficulty_boundaries(score, tier):
    assert classify_difficulty(score) == tier


def test_classify_difficulty_is_monotonic():
    tiers = [classify_difficulty(s) for s in range(101)]
    assert tiers == sorted(tiers)


def test_average_score():
    results = [
        AreaResult(area=SubjectArea.mathematics, score_percent=80, recommended_difficulty=3),
        AreaResult(area=SubjectArea.languages, score_percent=45, recommended_difficulty=1),
    ]
    assert average_score(results) == 63  # 62.5 rounds up


def test_average_score_requires_results():
    with pytest.raises(ValueError):
        average_score([])


@pytest.mark.parametrize("score,tier", [(0, "low"), (29, "low"), (30, "medium"), (69, "medium"), (70, "high")])
def test_score_tier(score, tier):
    assert score_tier(score) == tier


def _mission(steps):
    return Mission(id=1, title="m", area=SubjectArea.sciences, path_id=1, steps=steps)


def test_score_mission_mixes_step_kinds():
    mission = _mission([
        {"kind": "multiple_choice", "prompt": "p", "options": ["a", "b"], "correct_option_index": 1},
        {"kind": "free_text", "prompt": "why?", "expected_keywords": ["Light", "water"]},
        {"kind": "free_text", "prompt": "anything"},
        {"kind": "multiple_choice", "prompt": "p", "options": ["a", "b"], "correct_option_index": 0},
    ])
    responses = {0: 1, 1: "Plants need light and WATER", 2: "  ", 3: 1}
    assert score_mission(mission, responses) == 50


def test_score_mission_ignores_boolean_responses():
    mission = _mission([{"kind": "multiple_choice", "prompt": "p", "options": ["a", "b"], "correct_option_index": 1}])
    assert score_mission(mission, {0: True}) == 0


def test_score_mission_without_steps_is_rejected():
    with pytest.raises(InvalidAnswerError):
        score_mission(_mission([]), {})
