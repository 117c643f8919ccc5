from __future__ import annotations
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..deps import get_engine
from ..engine import Engine
from ..schemas import SubjectArea
from ..scoring import score_mission


router = APIRouter(prefix="/missions", tags=["missions"])


class StartMissionRequest(BaseModel):
    learner_id: int


class CompleteMissionRequest(BaseModel):
    learner_id: int
    # Either a score computed by the client or the raw step responses keyed by step position
    score: Optional[int] = None
    responses: Optional[Dict[int, Union[int, str]]] = None


class FeedbackRequest(BaseModel):
    learner_id: int
    answers: Any = None


@router.post("/{mission_id}/start")
async def start_mission(mission_id: int, req: StartMissionRequest, engine: Engine = Depends(get_engine)):
    record = engine.start_mission(req.learner_id, mission_id)
    return record.model_dump(mode="json")


@router.post("/{mission_id}/complete")
async def complete_mission(mission_id: int, req: CompleteMissionRequest, engine: Engine = Depends(get_engine)):
    score = req.score
    if score is None:
        if req.responses is None:
            raise HTTPException(status_code=400, detail="score or responses is required")
        score = score_mission(engine.catalogue.get_mission(mission_id), req.responses)
    outcome = engine.complete_mission(req.learner_id, mission_id, score)
    return {
        "progress": outcome.record.model_dump(mode="json"),
        "xp_awarded": outcome.xp_awarded,
        "xp_total": outcome.xp_total,
        "level": outcome.level,
        "new_achievements": [g.model_dump(mode="json") for g in outcome.new_grants],
    }


@router.post("/{mission_id}/feedback")
async def mission_feedback(mission_id: int, req: FeedbackRequest, engine: Engine = Depends(get_engine)):
    record = await engine.mission_feedback(req.learner_id, mission_id, req.answers)
    return {"feedback": record.feedback, "progress": record.model_dump(mode="json")}


@router.get("/recommended/{learner_id}")
async def recommended(learner_id: int, area: SubjectArea, engine: Engine = Depends(get_engine)):
    missions = engine.recommended_missions(learner_id, area)
    return {"learner_id": learner_id, "area": area.value, "missions": [m.model_dump(mode="json") for m in missions]}


@router.get("/progress/{learner_id}")
async def learner_progress(learner_id: int, engine: Engine = Depends(get_engine)):
    records = engine.learner_progress(learner_id)
    return {"learner_id": learner_id, "progress": [r.model_dump(mode="json") for r in records]}
