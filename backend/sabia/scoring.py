"""Pure scoring rules for diagnostics and missions."""
from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence, Union

from .errors import EmptyAreaError, InvalidAnswerError
from .schemas import (
    ADVANCED,
    INTERMEDIATE,
    INTRODUCTORY,
    AreaResult,
    DiagnosticQuestion,
    FreeTextStep,
    Mission,
    MultipleChoiceStep,
    SubjectArea,
)


ADVANCED_MIN_SCORE = 80
INTERMEDIATE_MIN_SCORE = 50

# Bands used for the static recommendation text
LOW_TIER_BELOW = 30
HIGH_TIER_FROM = 70


def round_half_up(numerator: int, denominator: int) -> int:
    # Integer arithmetic; Python's round() would send 12.5 to 12
    return (2 * numerator + denominator) // (2 * denominator)


def score_area(
    answers: Mapping[int, int],
    questions: Sequence[DiagnosticQuestion],
    area: Optional[SubjectArea] = None,
) -> int:
    """Percentage of ``questions`` answered correctly.

    ``answers`` maps question id to the selected option index. Questions
    without an entry count as incorrect. ``area`` only names the area in the
    error raised for an empty question list.
    """
    total = len(questions)
    if total == 0:
        raise EmptyAreaError(area.value if area else "unknown")
    correct = sum(1 for q in questions if answers.get(q.id) == q.correct_option_index)
    return round_half_up(correct * 100, total)


def classify_difficulty(score_percent: int) -> int:
    if score_percent >= ADVANCED_MIN_SCORE:
        return ADVANCED
    if score_percent >= INTERMEDIATE_MIN_SCORE:
        return INTERMEDIATE
    return INTRODUCTORY


def average_score(results: Iterable[AreaResult]) -> int:
    scores = [r.score_percent for r in results]
    if not scores:
        raise ValueError("average_score needs at least one area result")
    return round_half_up(sum(scores), len(scores))


def score_tier(score_percent: int) -> str:
    if score_percent < LOW_TIER_BELOW:
        return "low"
    if score_percent < HIGH_TIER_FROM:
        return "medium"
    return "high"


def _free_text_correct(step: FreeTextStep, response: object) -> bool:
    if not isinstance(response, str) or not response.strip():
        return False
    text = response.lower()
    return all(keyword.lower() in text for keyword in step.expected_keywords)


def score_mission(mission: Mission, responses: Mapping[int, Union[int, str]]) -> int:
    """Grade a mission from ``responses`` keyed by step position."""
    if not mission.steps:
        raise InvalidAnswerError(f"Mission {mission.id} has no gradable steps")
    correct = 0
    for position, step in enumerate(mission.steps):
        response = responses.get(position)
        if isinstance(step, MultipleChoiceStep):
            # bool is an int subclass; True must not pass for option 1
            if isinstance(response, int) and not isinstance(response, bool) and response == step.correct_option_index:
                correct += 1
        elif _free_text_correct(step, response):
            correct += 1
    return round_half_up(correct * 100, len(mission.steps))
