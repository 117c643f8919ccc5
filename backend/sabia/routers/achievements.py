from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps import get_engine
from ..engine import Engine


router = APIRouter(prefix="/achievements", tags=["achievements"])


@router.get("")
async def list_achievements(engine: Engine = Depends(get_engine)):
    return {"achievements": [a.model_dump(mode="json", by_alias=True) for a in engine.achievements()]}


@router.get("/{learner_id}")
async def earned_achievements(learner_id: int, engine: Engine = Depends(get_engine)):
    earned = engine.earned_achievements(learner_id)
    return {
        "learner_id": learner_id,
        "achievements": [
            {**achievement.model_dump(mode="json", by_alias=True), "earned_at": grant.earned_at.isoformat()}
            for achievement, grant in earned
        ],
    }
