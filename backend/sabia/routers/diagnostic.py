from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_engine
from ..diagnostic import DiagnosticSession
from ..engine import DiagnosticReport, Engine


router = APIRouter(prefix="/diagnostic", tags=["diagnostic"])


class StartRequest(BaseModel):
    learner_id: int


class AnswerRequest(BaseModel):
    session_id: str
    question_id: int
    option_index: int = Field(ge=0)


class AdvanceRequest(BaseModel):
    session_id: str


def _session_payload(session: DiagnosticSession) -> Dict[str, Any]:
    question = session.current_question
    return {
        "session_id": session.session_id,
        "learner_id": session.learner_id,
        "complete": session.is_complete,
        "bypassed": session.bypassed,
        "current_area": session.current_area.value if session.current_area else None,
        "question_index": session.question_index,
        "questions_in_area": len(session.questions_in_area(session.current_area)) if session.current_area else 0,
        # The correct option never leaves the server
        "question": (
            {
                "id": question.id,
                "prompt": question.prompt,
                "options": question.options,
                "difficulty": question.difficulty,
                "selected_option": session.answers.get(question.id),
            }
            if question
            else None
        ),
        "progress_percent": session.progress_percent,
        "area_results": [r.model_dump(mode="json") for r in session.area_results],
    }


def _report_payload(report: Optional[DiagnosticReport]) -> Optional[Dict[str, Any]]:
    if report is None:
        return None
    return {
        "results": [r.model_dump(mode="json") for r in report.results],
        "average_score": report.average_score,
        "recommendation": report.recommendation,
    }


@router.post("/start")
async def start_diagnostic(req: StartRequest, engine: Engine = Depends(get_engine)):
    session = engine.start_diagnostic(req.learner_id)
    return _session_payload(session)


@router.post("/answer")
async def submit_answer(req: AnswerRequest, engine: Engine = Depends(get_engine)):
    session = engine.submit_answer(req.session_id, req.question_id, req.option_index)
    return _session_payload(session)


@router.post("/advance")
async def advance(req: AdvanceRequest, engine: Engine = Depends(get_engine)):
    session, report = await engine.advance_diagnostic(req.session_id)
    payload = _session_payload(session)
    payload["report"] = _report_payload(report)
    return payload


@router.get("/state")
async def get_state(session_id: str, engine: Engine = Depends(get_engine)):
    return _session_payload(engine.sessions.get(session_id))


@router.get("/results/{learner_id}")
async def latest_results(learner_id: int, engine: Engine = Depends(get_engine)):
    latest = engine.latest_results(learner_id)
    return {
        "learner_id": learner_id,
        "results": [latest[area].model_dump(mode="json") for area in latest],
    }
