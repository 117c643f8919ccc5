"""Tests for leveling and achievement evaluation."""
import pytest

from factories import add_achievement, add_learner, add_mission, add_path
from sabia.achievements import (
    AchievementEvaluator,
    ProgressSnapshot,
    criteria_satisfied,
    is_relevant,
    level_for_xp,
)
from sabia.models import AchievementGrantRow
from sabia.progress import ProgressTracker
from sabia.schemas import (
    Achievement,
    AchievementCriteria,
    AreaResult,
    Learner,
    Mission,
    ProgressRecord,
    SubjectArea,
)


MATH = SubjectArea.mathematics
LANG = SubjectArea.languages


@pytest.mark.parametrize("xp,level", [(0, 1), (999, 1), (1000, 2), (1999, 2), (2500, 3), (-5, 1)])
def test_level_for_xp(xp, level):
    assert level_for_xp(xp, 1000) == level


def test_level_is_monotonic():
    levels = [level_for_xp(xp, 250) for xp in range(0, 5000, 7)]
    assert levels == sorted(levels)


def _snapshot(records=(), missions=None, level=1, area_results=(), path_missions=None):
    return ProgressSnapshot(
        learner=Learner(id=1, username="ana", level=level),
        records=tuple(records),
        missions=missions or {},
        area_results=tuple(area_results),
        path_missions=path_missions or {},
    )


def _mission(mid, area=MATH, path_id=1):
    return Mission(id=mid, title=f"m{mid}", area=area, path_id=path_id)


def _done(mid, score):
    return ProgressRecord(learner_id=1, mission_id=mid, completed=True, score=score, attempts=1)


def test_completed_missions_in_area_with_min_score():
    missions = {1: _mission(1), 2: _mission(2), 3: _mission(3, LANG)}
    criteria = AchievementCriteria.model_validate({"area": "mathematics", "completedMissions": 2, "minScore": 90})
    snap = _snapshot([_done(1, 95), _done(2, 85), _done(3, 100)], missions)
    assert not criteria_satisfied(criteria, snap)
    snap = _snapshot([_done(1, 95), _done(2, 90), _done(3, 100)], missions)
    assert criteria_satisfied(criteria, snap)


def test_incomplete_records_do_not_count():
    missions = {1: _mission(1)}
    started = ProgressRecord(learner_id=1, mission_id=1, completed=False, attempts=3)
    criteria = AchievementCriteria.model_validate({"completedMissions": 1})
    assert not criteria_satisfied(criteria, _snapshot([started], missions))


def test_min_score_on_any_mission():
    missions = {1: _mission(1), 2: _mission(2)}
    criteria = AchievementCriteria.model_validate({"minScore": 100})
    assert not criteria_satisfied(criteria, _snapshot([_done(1, 99)], missions))
    assert criteria_satisfied(criteria, _snapshot([_done(1, 99), _done(2, 100)], missions))


def test_path_completion():
    missions = {1: _mission(1, path_id=3), 2: _mission(2, path_id=3)}
    criteria = AchievementCriteria.model_validate({"pathId": 3, "completed": True})
    paths = {3: (1, 2)}
    assert not criteria_satisfied(criteria, _snapshot([_done(1, 50)], missions, path_missions=paths))
    assert criteria_satisfied(criteria, _snapshot([_done(1, 50), _done(2, 10)], missions, path_missions=paths))
    assert not criteria_satisfied(criteria, _snapshot([_done(1, 50)], missions, path_missions={3: ()}))


def test_min_level():
    criteria = AchievementCriteria.model_validate({"minLevel": 3})
    assert not criteria_satisfied(criteria, _snapshot(level=2))
    assert criteria_satisfied(criteria, _snapshot(level=3))


def test_all_areas_needs_a_completion_in_every_area():
    areas = list(SubjectArea)
    missions = {i: _mission(i, area) for i, area in enumerate(areas, start=1)}
    criteria = AchievementCriteria.model_validate({"minLevel": 10, "allAreas": True})
    every_area = [_done(i, 50) for i in missions]

    assert criteria_satisfied(criteria, _snapshot(every_area, missions, level=10))
    assert not criteria_satisfied(criteria, _snapshot(every_area[:-1], missions, level=10))
    assert not criteria_satisfied(criteria, _snapshot(every_area, missions, level=9))


def test_min_diagnostic_score_uses_latest_result():
    criteria = AchievementCriteria.model_validate({"area": "mathematics", "minDiagnosticScore": 80})
    high_then_low = [
        AreaResult(area=MATH, score_percent=90, recommended_difficulty=3),
        AreaResult(area=MATH, score_percent=40, recommended_difficulty=1),
    ]
    assert not criteria_satisfied(criteria, _snapshot(area_results=high_then_low))
    assert criteria_satisfied(criteria, _snapshot(area_results=list(reversed(high_then_low))))


def test_unknown_or_empty_criteria_never_match():
    assert not criteria_satisfied(AchievementCriteria.model_validate({"visitedLocations": [1, 2]}), _snapshot(level=50))
    assert not criteria_satisfied(AchievementCriteria.model_validate({"minLevel": 1, "forumPosts": 3}), _snapshot(level=50))
    assert not criteria_satisfied(AchievementCriteria(), _snapshot(level=50))


def test_relevance_by_area():
    agnostic = Achievement(id=1, title="any")
    math_only = Achievement(id=2, title="math", area=MATH)
    assert is_relevant(agnostic, LANG)
    assert is_relevant(math_only, MATH)
    assert not is_relevant(math_only, LANG)


@pytest.fixture
def world(db):
    learner = add_learner(db)
    math_path = add_path(db, area="mathematics")
    lang_path = add_path(db, area="languages")
    m1 = add_mission(db, math_path, xp_reward=600, sequence=1)
    m2 = add_mission(db, math_path, xp_reward=600, sequence=2)
    lang = add_mission(db, lang_path, xp_reward=10)
    first = add_achievement(db, "First Quest", {"completedMissions": 1})
    flawless_math = add_achievement(db, "Math Ace", {"area": "mathematics", "minScore": 100}, area="mathematics")
    path_done = add_achievement(db, "Pathfinder", {"pathId": math_path.id, "completed": True}, area="mathematics")
    level_two = add_achievement(db, "Veteran", {"minLevel": 2})
    return {
        "learner": learner, "m1": m1, "m2": m2, "lang": lang,
        "first": first, "flawless_math": flawless_math, "path_done": path_done, "level_two": level_two,
    }


def test_completion_grants_satisfied_achievements(db, gateway, catalogue, world):
    tracker = ProgressTracker(gateway, catalogue, xp_per_level=1000)
    learner_id = world["learner"].id

    outcome = tracker.complete_mission(learner_id, world["m1"].id, 100)
    assert {g.achievement_id for g in outcome.new_grants} == {world["first"].id, world["flawless_math"].id}

    outcome = tracker.complete_mission(learner_id, world["m2"].id, 70)
    assert {g.achievement_id for g in outcome.new_grants} == {world["path_done"].id, world["level_two"].id}

    outcome = tracker.complete_mission(learner_id, world["m2"].id, 70)
    assert outcome.new_grants == []
    assert db.query(AchievementGrantRow).count() == 4


def test_area_specific_achievements_skip_other_areas(db, gateway, catalogue, world):
    tracker = ProgressTracker(gateway, catalogue, xp_per_level=1000)
    learner_id = world["learner"].id
    # A perfect math record exists, but the event is in languages
    gateway.upsert_progress(ProgressRecord(learner_id=learner_id, mission_id=world["m1"].id, completed=True, score=100))

    outcome = tracker.complete_mission(learner_id, world["lang"].id, 100)
    assert {g.achievement_id for g in outcome.new_grants} == {world["first"].id}


def test_evaluation_is_idempotent(db, gateway, catalogue, world):
    learner_id = world["learner"].id
    gateway.upsert_progress(ProgressRecord(learner_id=learner_id, mission_id=world["m1"].id, completed=True, score=100))
    evaluator = AchievementEvaluator(gateway, catalogue)

    first = evaluator.evaluate(learner_id, MATH)
    second = evaluator.evaluate(learner_id, MATH)

    assert {g.achievement_id for g in first} == {world["first"].id, world["flawless_math"].id}
    assert second == []
    assert {g.achievement_id for g in gateway.list_grants(learner_id)} == {g.achievement_id for g in first}
