"""Mission progress: attempts, completion, XP and level."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, List, Optional

from .achievements import DEFAULT_XP_PER_LEVEL, AchievementEvaluator, level_for_xp
from .diagnostic import latest_by_area
from .errors import InvalidScoreError, ProgressNotFoundError
from .feedback import MissionFeedbackGenerator, mission_feedback_with_fallback
from .schemas import INTRODUCTORY, AchievementGrant, Mission, ProgressRecord, SubjectArea


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionOutcome:
    record: ProgressRecord
    xp_awarded: int
    xp_total: int
    level: int
    new_grants: List[AchievementGrant] = field(default_factory=list)


def validate_score(score: Any) -> int:
    if isinstance(score, bool) or not isinstance(score, int) or not 0 <= score <= 100:
        raise InvalidScoreError(score)
    return score


class ProgressTracker:
    """Start and complete transitions for (learner, mission) pairs.

    Restarting a completed mission only bumps ``attempts``; the previous
    ``completed``/``score`` stay visible until the retry is completed.
    Every completion credits the mission's XP, repeats included.
    """

    def __init__(
        self,
        gateway,
        catalogue,
        evaluator: Optional[AchievementEvaluator] = None,
        *,
        xp_per_level: int = DEFAULT_XP_PER_LEVEL,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.gateway = gateway
        self.catalogue = catalogue
        self.evaluator = evaluator or AchievementEvaluator(gateway, catalogue)
        self.xp_per_level = xp_per_level
        self.clock = clock

    def start_mission(self, learner_id: int, mission_id: int) -> ProgressRecord:
        self.catalogue.get_mission(mission_id)
        existing = self.gateway.get_progress(learner_id, mission_id)
        if existing is None:
            record = ProgressRecord(learner_id=learner_id, mission_id=mission_id, completed=False, attempts=1)
        else:
            record = existing.model_copy(update={"attempts": existing.attempts + 1})
        return self.gateway.upsert_progress(record)

    def complete_mission(self, learner_id: int, mission_id: int, score: int) -> CompletionOutcome:
        validate_score(score)
        mission = self.catalogue.get_mission(mission_id)
        existing = self.gateway.get_progress(learner_id, mission_id)
        # Completing without a prior start counts as the first attempt
        base = existing or ProgressRecord(learner_id=learner_id, mission_id=mission_id, attempts=1)
        record = self.gateway.upsert_progress(
            base.model_copy(update={"completed": True, "score": score, "completed_at": self.clock()})
        )

        xp_total = self.gateway.credit_xp(learner_id, mission.xp_reward)
        level = level_for_xp(xp_total, self.xp_per_level)
        self.gateway.set_level(learner_id, level)
        logger.info(
            "Learner %s completed mission %s with %d: +%d xp (total %d, level %d)",
            learner_id, mission_id, score, mission.xp_reward, xp_total, level,
        )

        grants = self.evaluator.evaluate(learner_id, mission.area)
        return CompletionOutcome(
            record=record, xp_awarded=mission.xp_reward, xp_total=xp_total, level=level, new_grants=grants,
        )

    async def attach_feedback(
        self,
        learner_id: int,
        mission_id: int,
        answers: Any,
        generator: MissionFeedbackGenerator,
        timeout: Optional[float] = None,
    ) -> ProgressRecord:
        mission = self.catalogue.get_mission(mission_id)
        record = self.gateway.get_progress(learner_id, mission_id)
        if record is None:
            raise ProgressNotFoundError(learner_id, mission_id)
        text = await mission_feedback_with_fallback(
            generator, mission.title, mission.area.value, record.score or 0, record.attempts, answers, timeout,
        )
        return self.gateway.upsert_progress(record.model_copy(update={"feedback": text}))

    def recommend_missions(self, learner_id: int, area: SubjectArea) -> List[Mission]:
        """Uncompleted missions of ``area`` at the learner's latest diagnosed tier.

        Missions on paths that require a higher level than the learner has are left out.
        """
        level = self.gateway.get_learner(learner_id).level
        latest = latest_by_area(self.gateway.list_area_results(learner_id)).get(area)
        tier = latest.recommended_difficulty if latest is not None else INTRODUCTORY
        done = {r.mission_id for r in self.gateway.list_progress(learner_id) if r.completed}
        return [
            m for m in self.catalogue.list_missions(area=area)
            if m.difficulty == tier and m.id not in done and m.required_level <= level
        ]
