"""Entry points the request layer calls.

``Engine`` binds one gateway/catalogue pair (normally one database session
per request) to the process-wide ``SessionStore`` and feedback generator.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .achievements import AchievementEvaluator
from .diagnostic import DiagnosticSession, SessionStore, latest_by_area, open_session
from .feedback import recommend_with_fallback
from .progress import CompletionOutcome, ProgressTracker, validate_score
from .schemas import Achievement, AchievementGrant, AreaResult, Mission, ProgressRecord, SubjectArea
from .scoring import average_score
from .settings import settings


logger = logging.getLogger(__name__)

OVERALL_AREA = "overall"


@dataclass
class DiagnosticReport:
    session_id: str
    learner_id: int
    results: List[AreaResult] = field(default_factory=list)
    average_score: Optional[int] = None
    recommendation: Optional[str] = None


class Engine:
    def __init__(
        self,
        gateway,
        catalogue,
        sessions: SessionStore,
        feedback,
        *,
        areas: Optional[Sequence[SubjectArea]] = None,
        xp_per_level: Optional[int] = None,
        feedback_timeout: Optional[float] = None,
        tracker: Optional[ProgressTracker] = None,
    ) -> None:
        self.gateway = gateway
        self.catalogue = catalogue
        self.sessions = sessions
        self.feedback = feedback
        self.areas = list(areas if areas is not None else settings.diagnostic_areas)
        self.feedback_timeout = feedback_timeout if feedback_timeout is not None else settings.feedback_timeout_seconds
        self.tracker = tracker or ProgressTracker(
            gateway,
            catalogue,
            AchievementEvaluator(gateway, catalogue),
            xp_per_level=xp_per_level or settings.xp_per_level,
        )

    # -- diagnostic --

    def start_diagnostic(self, learner_id: int) -> DiagnosticSession:
        """Open and store a session for the learner.

        Staff sessions are stored too, already complete: answering one raises
        ``NoActiveQuestionError`` and advancing it closes it with an empty report.
        """
        learner = self.gateway.get_learner(learner_id)
        session = open_session(learner, self.areas, self.catalogue.get_questions_for_area)
        self.sessions.add(session)
        return session

    def submit_answer(self, session_id: str, question_id: int, option_index: int) -> DiagnosticSession:
        session = self.sessions.get(session_id)
        session.answer(question_id, option_index)
        return session

    async def advance_diagnostic(self, session_id: str) -> tuple[DiagnosticSession, Optional[DiagnosticReport]]:
        """Advance the session; once it completes, persist and report.

        A session left complete by a failed save is only saved again on the
        next call, starting from the first result not yet written.
        """
        session = self.sessions.get(session_id)
        if not session.is_complete:
            session.advance()
        if not session.is_complete:
            return session, None
        report = await self._finish(session)
        self.sessions.discard(session_id)
        return session, report

    async def _finish(self, session: DiagnosticSession) -> DiagnosticReport:
        for result in session.area_results[session.saved_results:]:
            self.gateway.append_area_result(session.learner_id, result, run_id=session.session_id)
            session.saved_results += 1

        report = DiagnosticReport(session_id=session.session_id, learner_id=session.learner_id, results=list(session.area_results))
        if session.area_results:
            report.average_score = average_score(session.area_results)
            report.recommendation = await recommend_with_fallback(
                self.feedback, OVERALL_AREA, report.average_score, session.answered(), self.feedback_timeout,
            )
        logger.info("Diagnostic %s complete for learner %s (average %s)", session.session_id, session.learner_id, report.average_score)
        return report

    def latest_results(self, learner_id: int) -> Dict[SubjectArea, AreaResult]:
        self.gateway.get_learner(learner_id)
        return latest_by_area(self.gateway.list_area_results(learner_id))

    # -- missions --

    def start_mission(self, learner_id: int, mission_id: int) -> ProgressRecord:
        self.gateway.get_learner(learner_id)
        return self.tracker.start_mission(learner_id, mission_id)

    def complete_mission(self, learner_id: int, mission_id: int, score: int) -> CompletionOutcome:
        validate_score(score)
        self.gateway.get_learner(learner_id)
        return self.tracker.complete_mission(learner_id, mission_id, score)

    async def mission_feedback(self, learner_id: int, mission_id: int, answers: Any) -> ProgressRecord:
        return await self.tracker.attach_feedback(learner_id, mission_id, answers, self.feedback, self.feedback_timeout)

    def recommended_missions(self, learner_id: int, area: SubjectArea) -> List[Mission]:
        self.gateway.get_learner(learner_id)
        return self.tracker.recommend_missions(learner_id, area)

    def learner_progress(self, learner_id: int) -> List[ProgressRecord]:
        self.gateway.get_learner(learner_id)
        return self.gateway.list_progress(learner_id)

    # -- achievements --

    def achievements(self) -> List[Achievement]:
        return self.catalogue.list_achievements()

    def earned_achievements(self, learner_id: int) -> List[Tuple[Achievement, AchievementGrant]]:
        """Grants of the learner paired with their catalogue entry, oldest first."""
        self.gateway.get_learner(learner_id)
        by_id = {a.id: a for a in self.catalogue.list_achievements()}
        return [(by_id[g.achievement_id], g) for g in self.gateway.list_grants(learner_id) if g.achievement_id in by_id]
