"""Diagnostic quiz state machine.

A session walks a learner through the configured areas one question at a
time. When the last question of an area is advanced past, the area is scored
and an ``AreaResult`` is appended; after the last area the session is
complete. Sessions are plain objects held in a ``SessionStore`` owned by the
request layer and addressed by ``session_id``.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .errors import (
    EmptyAreaError,
    InvalidAnswerError,
    NoActiveQuestionError,
    SessionNotFoundError,
    UnansweredQuestionError,
)
from .schemas import AreaResult, DiagnosticQuestion, Learner, LearnerRole, SubjectArea
from .scoring import classify_difficulty, score_area


logger = logging.getLogger(__name__)

QuestionLoader = Callable[[SubjectArea], Sequence[DiagnosticQuestion]]


class SessionStatus(str, Enum):
    in_area = "in_area"
    complete = "complete"


class DiagnosticSession:
    def __init__(
        self,
        session_id: str,
        learner_id: int,
        areas: Sequence[SubjectArea],
        questions: Mapping[SubjectArea, Sequence[DiagnosticQuestion]],
        *,
        bypassed: bool = False,
    ) -> None:
        self.session_id = session_id
        self.learner_id = learner_id
        self.areas: List[SubjectArea] = list(areas)
        self._questions: Dict[SubjectArea, List[DiagnosticQuestion]] = {a: list(questions.get(a, ())) for a in self.areas}
        self.bypassed = bypassed
        self.area_index = 0
        self.question_index = 0
        self.answers: Dict[int, int] = {}
        self.area_results: List[AreaResult] = []
        # how many of area_results the gateway has stored
        self.saved_results = 0
        self.status = SessionStatus.complete if bypassed or not self.areas else SessionStatus.in_area
        self.created_at = datetime.utcnow()
        self.last_activity_at = self.created_at

    @classmethod
    def for_student(
        cls,
        session_id: str,
        learner: Learner,
        areas: Sequence[SubjectArea],
        load_questions: QuestionLoader,
    ) -> "DiagnosticSession":
        questions: Dict[SubjectArea, Sequence[DiagnosticQuestion]] = {}
        for area in areas:
            area_questions = load_questions(area)
            if not area_questions:
                raise EmptyAreaError(area.value)
            questions[area] = area_questions
        logger.info("Diagnostic %s opened for learner %s over %d areas", session_id, learner.id, len(areas))
        return cls(session_id, learner.id, areas, questions)

    @classmethod
    def bypassed_for(
        cls,
        session_id: str,
        learner: Learner,
        areas: Sequence[SubjectArea],
        load_questions: QuestionLoader,
    ) -> "DiagnosticSession":
        # Staff accounts skip the diagnostic: complete from the start, nothing to score
        logger.info("Diagnostic %s bypassed for %s learner %s", session_id, learner.role.value, learner.id)
        return cls(session_id, learner.id, areas, {}, bypassed=True)

    @property
    def is_complete(self) -> bool:
        return self.status is SessionStatus.complete

    @property
    def current_area(self) -> Optional[SubjectArea]:
        if self.is_complete:
            return None
        return self.areas[self.area_index]

    @property
    def current_question(self) -> Optional[DiagnosticQuestion]:
        area = self.current_area
        if area is None:
            return None
        return self._questions[area][self.question_index]

    def questions_in_area(self, area: SubjectArea) -> List[DiagnosticQuestion]:
        return list(self._questions.get(area, ()))

    @property
    def progress_percent(self) -> float:
        if self.is_complete:
            return 100.0
        in_area = self.question_index * 100 / len(self._questions[self.areas[self.area_index]])
        return round((self.area_index * 100 + in_area) / len(self.areas), 1)

    def answer(self, question_id: int, option_index: int) -> None:
        question = self.current_question
        if question is None:
            raise NoActiveQuestionError()
        if question_id != question.id:
            raise InvalidAnswerError(f"Question {question_id} is not the current question ({question.id})")
        if option_index < 0 or option_index >= len(question.options):
            raise InvalidAnswerError(f"option_index must be 0..{len(question.options) - 1}")
        self.answers[question.id] = option_index
        self.last_activity_at = datetime.utcnow()

    def advance(self) -> Optional[AreaResult]:
        """Move past the current question.

        Returns the ``AreaResult`` when this closed an area, otherwise None.
        """
        question = self.current_question
        if question is None:
            raise NoActiveQuestionError()
        if question.id not in self.answers:
            raise UnansweredQuestionError(question.id)
        self.last_activity_at = datetime.utcnow()

        area = self.areas[self.area_index]
        area_questions = self._questions[area]
        if self.question_index < len(area_questions) - 1:
            self.question_index += 1
            return None

        score = score_area(self.answers, area_questions, area)
        result = AreaResult(area=area, score_percent=score, recommended_difficulty=classify_difficulty(score))
        self.area_results.append(result)
        logger.info(
            "Diagnostic %s scored %s: %d%% (tier %d)",
            self.session_id, area.value, score, result.recommended_difficulty,
        )

        self.area_index += 1
        self.question_index = 0
        if self.area_index >= len(self.areas):
            self.status = SessionStatus.complete
        return result

    def answered(self) -> List[Dict[str, int]]:
        return [{"question_id": qid, "answer": option} for qid, option in self.answers.items()]


_SESSION_CONSTRUCTORS: Dict[LearnerRole, Callable[..., DiagnosticSession]] = {
    LearnerRole.student: DiagnosticSession.for_student,
    LearnerRole.teacher: DiagnosticSession.bypassed_for,
    LearnerRole.manager: DiagnosticSession.bypassed_for,
}


def open_session(
    learner: Learner,
    areas: Sequence[SubjectArea],
    load_questions: QuestionLoader,
    session_id: Optional[str] = None,
) -> DiagnosticSession:
    constructor = _SESSION_CONSTRUCTORS[learner.role]
    return constructor(session_id or uuid.uuid4().hex, learner, areas, load_questions)


class SessionStore:
    """In-memory diagnostic sessions keyed by id."""

    def __init__(self) -> None:
        self._sessions: Dict[str, DiagnosticSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def add(self, session: DiagnosticSession) -> None:
        self._sessions[session.session_id] = session

    def get(self, session_id: str) -> DiagnosticSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def purge_idle(self, threshold: datetime) -> int:
        stale = [sid for sid, s in self._sessions.items() if s.last_activity_at < threshold]
        for sid in stale:
            del self._sessions[sid]
        return len(stale)


def latest_by_area(results: Iterable[AreaResult]) -> Dict[SubjectArea, AreaResult]:
    """Most recent result per area; ``results`` must be ordered oldest first."""
    latest: Dict[SubjectArea, AreaResult] = {}
    for result in results:
        latest[result.area] = result
    return latest
