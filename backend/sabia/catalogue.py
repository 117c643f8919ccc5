"""Read-only access to questions, missions and achievements."""
from __future__ import annotations

from typing import List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import MissionNotFoundError
from .models import AchievementRow, DiagnosticQuestionRow, LearningPathRow, MissionRow
from .schemas import Achievement, AchievementCriteria, DiagnosticQuestion, Mission, SubjectArea


class CatalogueProvider(Protocol):
    def get_questions_for_area(self, area: SubjectArea) -> List[DiagnosticQuestion]: ...

    def get_mission(self, mission_id: int) -> Mission: ...

    def list_missions(self, area: Optional[SubjectArea] = None, path_id: Optional[int] = None) -> List[Mission]: ...

    def list_achievements(self) -> List[Achievement]: ...


def question_from_row(row: DiagnosticQuestionRow) -> DiagnosticQuestion:
    return DiagnosticQuestion(
        id=row.id,
        area=SubjectArea(row.area),
        prompt=row.prompt,
        options=list(row.options),
        correct_option_index=row.correct_option_index,
        difficulty=row.difficulty,
    )


def mission_from_row(row: MissionRow, required_level: Optional[int] = None) -> Mission:
    return Mission(
        id=row.id,
        title=row.title,
        area=SubjectArea(row.area),
        difficulty=row.difficulty,
        xp_reward=row.xp_reward,
        path_id=row.path_id,
        steps=row.steps or [],
        sequence=row.sequence,
        required_level=required_level or 1,
    )


def achievement_from_row(row: AchievementRow) -> Achievement:
    return Achievement(
        id=row.id,
        title=row.title,
        description=row.description or "",
        area=SubjectArea(row.area) if row.area else None,
        criteria=AchievementCriteria.model_validate(row.criteria or {}),
    )


class SqlCatalogue:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_questions_for_area(self, area: SubjectArea) -> List[DiagnosticQuestion]:
        rows = self.db.scalars(
            select(DiagnosticQuestionRow)
            .where(DiagnosticQuestionRow.area == area.value)
            .order_by(DiagnosticQuestionRow.position, DiagnosticQuestionRow.id)
        ).all()
        return [question_from_row(r) for r in rows]

    def get_mission(self, mission_id: int) -> Mission:
        row = self.db.get(MissionRow, mission_id)
        if row is None:
            raise MissionNotFoundError(mission_id)
        path = self.db.get(LearningPathRow, row.path_id)
        return mission_from_row(row, path.required_level if path is not None else None)

    def list_missions(self, area: Optional[SubjectArea] = None, path_id: Optional[int] = None) -> List[Mission]:
        stmt = select(MissionRow, LearningPathRow.required_level).outerjoin(
            LearningPathRow, MissionRow.path_id == LearningPathRow.id
        )
        if area is not None:
            stmt = stmt.where(MissionRow.area == area.value)
        if path_id is not None:
            stmt = stmt.where(MissionRow.path_id == path_id)
        rows = self.db.execute(stmt.order_by(MissionRow.path_id, MissionRow.sequence, MissionRow.id)).all()
        return [mission_from_row(mission, required_level) for mission, required_level in rows]

    def list_achievements(self) -> List[Achievement]:
        rows = self.db.scalars(select(AchievementRow).order_by(AchievementRow.id)).all()
        return [achievement_from_row(r) for r in rows]
