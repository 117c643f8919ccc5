"""Leveling and achievement evaluation."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .diagnostic import latest_by_area
from .schemas import (
    Achievement,
    AchievementCriteria,
    AchievementGrant,
    AreaResult,
    Learner,
    Mission,
    ProgressRecord,
    SubjectArea,
)


logger = logging.getLogger(__name__)

DEFAULT_XP_PER_LEVEL = 1000


def level_for_xp(xp: int, xp_per_level: int = DEFAULT_XP_PER_LEVEL) -> int:
    """Level reached with ``xp`` total experience; level 1 starts at 0 XP."""
    return max(xp, 0) // xp_per_level + 1


@dataclass(frozen=True)
class ProgressSnapshot:
    """Everything achievement criteria are checked against, read once."""

    learner: Learner
    records: Tuple[ProgressRecord, ...]
    missions: Mapping[int, Mission]
    area_results: Tuple[AreaResult, ...] = ()
    # path id -> ids of every mission on that path
    path_missions: Mapping[int, Tuple[int, ...]] = field(default_factory=dict)

    def completed_records(self, area: Optional[SubjectArea] = None) -> List[ProgressRecord]:
        done = []
        for record in self.records:
            if not record.completed:
                continue
            mission = self.missions.get(record.mission_id)
            if area is not None and (mission is None or mission.area != area):
                continue
            done.append(record)
        return done


def _meets_score(record: ProgressRecord, min_score: Optional[int]) -> bool:
    return min_score is None or (record.score is not None and record.score >= min_score)


def criteria_satisfied(criteria: AchievementCriteria, snapshot: ProgressSnapshot) -> bool:
    # Unknown requirement keys (map visits, lab activities...) cannot be checked here
    if criteria.model_extra:
        return False

    checks: List[bool] = []
    completed = snapshot.completed_records(criteria.area)

    if criteria.completed_missions is not None:
        qualifying = [r for r in completed if _meets_score(r, criteria.min_score)]
        checks.append(len(qualifying) >= criteria.completed_missions)
    elif criteria.min_score is not None:
        checks.append(any(_meets_score(r, criteria.min_score) for r in completed))

    if criteria.path_id is not None:
        path = snapshot.path_missions.get(criteria.path_id, ())
        done_ids = {r.mission_id for r in snapshot.completed_records()}
        checks.append(bool(path) and all(mid in done_ids for mid in path))

    if criteria.min_level is not None:
        checks.append(snapshot.learner.level >= criteria.min_level)

    if criteria.min_diagnostic_score is not None:
        latest = latest_by_area(snapshot.area_results)
        if criteria.area is not None:
            result = latest.get(criteria.area)
            checks.append(result is not None and result.score_percent >= criteria.min_diagnostic_score)
        else:
            checks.append(any(r.score_percent >= criteria.min_diagnostic_score for r in latest.values()))

    if criteria.all_areas:
        covered = {snapshot.missions[r.mission_id].area for r in snapshot.completed_records() if r.mission_id in snapshot.missions}
        checks.append(covered >= set(SubjectArea))

    return bool(checks) and all(checks)


def is_relevant(achievement: Achievement, area: Optional[SubjectArea]) -> bool:
    return achievement.area is None or area is None or achievement.area == area


def earned_achievements(
    achievements: Iterable[Achievement],
    snapshot: ProgressSnapshot,
    area: Optional[SubjectArea],
    already_granted: Set[int],
) -> List[Achievement]:
    return [
        a for a in achievements
        if a.id not in already_granted and is_relevant(a, area) and criteria_satisfied(a.criteria, snapshot)
    ]


class AchievementEvaluator:
    def __init__(self, gateway, catalogue) -> None:
        self.gateway = gateway
        self.catalogue = catalogue

    def snapshot(self, learner_id: int, achievements: Sequence[Achievement] = ()) -> ProgressSnapshot:
        learner = self.gateway.get_learner(learner_id)
        records = tuple(self.gateway.list_progress(learner_id))
        missions: Dict[int, Mission] = {}
        for record in records:
            if record.mission_id not in missions:
                missions[record.mission_id] = self.catalogue.get_mission(record.mission_id)
        path_missions: Dict[int, Tuple[int, ...]] = {}
        for achievement in achievements:
            path_id = achievement.criteria.path_id
            if path_id is not None and path_id not in path_missions:
                path_missions[path_id] = tuple(m.id for m in self.catalogue.list_missions(path_id=path_id))
        return ProgressSnapshot(
            learner=learner,
            records=records,
            missions=missions,
            area_results=tuple(self.gateway.list_area_results(learner_id)),
            path_missions=path_missions,
        )

    def evaluate(self, learner_id: int, area: Optional[SubjectArea] = None) -> List[AchievementGrant]:
        """Grant every newly satisfied achievement; returns only the new grants."""
        achievements = self.catalogue.list_achievements()
        snapshot = self.snapshot(learner_id, achievements)
        granted = {g.achievement_id for g in self.gateway.list_grants(learner_id)}
        new_grants = []
        for achievement in earned_achievements(achievements, snapshot, area, granted):
            new_grants.append(self.gateway.grant_achievement(learner_id, achievement.id))
            logger.info("Learner %s earned achievement %s (%s)", learner_id, achievement.id, achievement.title)
        return new_grants
