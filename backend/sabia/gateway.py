"""Durable storage of progress, diagnostic results, grants and XP.

``SqlGateway`` wraps every database failure in ``PersistenceError``.
Operations that are safe to repeat (progress upserts, grants) are retried
once after an operational error; appends and XP credits are not.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, Protocol, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import LearnerNotFoundError, PersistenceError
from .models import AchievementGrantRow, AreaResultRow, LearnerRow, ProgressRow
from .schemas import AchievementGrant, AreaResult, Learner, LearnerRole, ProgressRecord, SubjectArea


logger = logging.getLogger(__name__)

T = TypeVar("T")


class PersistenceGateway(Protocol):
    def get_learner(self, learner_id: int) -> Learner: ...

    def get_progress(self, learner_id: int, mission_id: int) -> Optional[ProgressRecord]: ...

    def list_progress(self, learner_id: int) -> List[ProgressRecord]: ...

    def upsert_progress(self, record: ProgressRecord) -> ProgressRecord: ...

    def append_area_result(self, learner_id: int, result: AreaResult, run_id: Optional[str] = None) -> None: ...

    def list_area_results(self, learner_id: int) -> List[AreaResult]: ...

    def list_grants(self, learner_id: int) -> List[AchievementGrant]: ...

    def grant_achievement(self, learner_id: int, achievement_id: int) -> AchievementGrant: ...

    def credit_xp(self, learner_id: int, amount: int) -> int: ...

    def set_level(self, learner_id: int, level: int) -> None: ...


def progress_from_row(row: ProgressRow) -> ProgressRecord:
    return ProgressRecord(
        id=row.id,
        learner_id=row.learner_id,
        mission_id=row.mission_id,
        completed=bool(row.completed),
        score=row.score,
        attempts=row.attempts,
        completed_at=row.completed_at,
        feedback=row.feedback,
    )


def grant_from_row(row: AchievementGrantRow) -> AchievementGrant:
    return AchievementGrant(learner_id=row.learner_id, achievement_id=row.achievement_id, earned_at=row.earned_at)


class SqlGateway:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _guard(self, op: Callable[[], T], description: str) -> T:
        try:
            return op()
        except SQLAlchemyError as err:
            self.db.rollback()
            raise PersistenceError(f"{description} failed") from err

    def _retry_once(self, op: Callable[[], T], description: str) -> T:
        try:
            return op()
        except OperationalError as err:
            self.db.rollback()
            logger.warning("Retrying %s after database error: %s", description, err)
        except SQLAlchemyError as err:
            self.db.rollback()
            raise PersistenceError(f"{description} failed") from err
        return self._guard(op, description)

    # -- learners --

    def get_learner(self, learner_id: int) -> Learner:
        row = self._guard(lambda: self.db.get(LearnerRow, learner_id), "loading learner")
        if row is None:
            raise LearnerNotFoundError(learner_id)
        return Learner(id=row.id, username=row.username, role=LearnerRole(row.role), xp=row.xp, level=row.level)

    def credit_xp(self, learner_id: int, amount: int) -> int:
        def op() -> int:
            res = self.db.execute(
                update(LearnerRow).where(LearnerRow.id == learner_id).values(xp=LearnerRow.xp + amount)
            )
            if res.rowcount == 0:
                self.db.rollback()
                raise LearnerNotFoundError(learner_id)
            self.db.commit()
            return self.db.scalar(select(LearnerRow.xp).where(LearnerRow.id == learner_id))
        return self._guard(op, "crediting xp")

    def set_level(self, learner_id: int, level: int) -> None:
        def op() -> None:
            self.db.execute(update(LearnerRow).where(LearnerRow.id == learner_id).values(level=level))
            self.db.commit()
        self._retry_once(op, "updating level")

    # -- progress --

    def _progress_row(self, learner_id: int, mission_id: int) -> Optional[ProgressRow]:
        return self.db.scalars(
            select(ProgressRow).where(ProgressRow.learner_id == learner_id, ProgressRow.mission_id == mission_id)
        ).first()

    def get_progress(self, learner_id: int, mission_id: int) -> Optional[ProgressRecord]:
        row = self._guard(lambda: self._progress_row(learner_id, mission_id), "loading progress")
        return progress_from_row(row) if row is not None else None

    def list_progress(self, learner_id: int) -> List[ProgressRecord]:
        rows = self._guard(
            lambda: self.db.scalars(
                select(ProgressRow).where(ProgressRow.learner_id == learner_id).order_by(ProgressRow.id)
            ).all(),
            "listing progress",
        )
        return [progress_from_row(r) for r in rows]

    @staticmethod
    def _apply(row: ProgressRow, record: ProgressRecord) -> None:
        row.completed = record.completed
        row.score = record.score
        row.attempts = record.attempts
        row.completed_at = record.completed_at
        row.feedback = record.feedback

    def upsert_progress(self, record: ProgressRecord) -> ProgressRecord:
        def op() -> ProgressRecord:
            row = self._progress_row(record.learner_id, record.mission_id)
            if row is None:
                row = ProgressRow(learner_id=record.learner_id, mission_id=record.mission_id)
                self.db.add(row)
            self._apply(row, record)
            try:
                self.db.commit()
            except IntegrityError:
                # Another request inserted the pair first; update that row instead
                self.db.rollback()
                row = self._progress_row(record.learner_id, record.mission_id)
                self._apply(row, record)
                self.db.commit()
            self.db.refresh(row)
            return progress_from_row(row)
        return self._retry_once(op, "saving progress")

    # -- diagnostics --

    def append_area_result(self, learner_id: int, result: AreaResult, run_id: Optional[str] = None) -> None:
        def op() -> None:
            self.db.add(AreaResultRow(
                learner_id=learner_id,
                run_id=run_id,
                area=result.area.value,
                score_percent=result.score_percent,
                recommended_difficulty=result.recommended_difficulty,
                completed_at=datetime.utcnow(),
            ))
            self.db.commit()
        self._guard(op, "saving diagnostic result")

    def list_area_results(self, learner_id: int) -> List[AreaResult]:
        rows = self._guard(
            lambda: self.db.scalars(
                select(AreaResultRow).where(AreaResultRow.learner_id == learner_id).order_by(AreaResultRow.id)
            ).all(),
            "listing diagnostic results",
        )
        return [
            AreaResult(area=SubjectArea(r.area), score_percent=r.score_percent, recommended_difficulty=r.recommended_difficulty)
            for r in rows
        ]

    # -- achievements --

    def list_grants(self, learner_id: int) -> List[AchievementGrant]:
        rows = self._guard(
            lambda: self.db.scalars(
                select(AchievementGrantRow).where(AchievementGrantRow.learner_id == learner_id).order_by(AchievementGrantRow.id)
            ).all(),
            "listing grants",
        )
        return [grant_from_row(r) for r in rows]

    def grant_achievement(self, learner_id: int, achievement_id: int) -> AchievementGrant:
        def existing() -> Optional[AchievementGrantRow]:
            return self.db.scalars(
                select(AchievementGrantRow).where(
                    AchievementGrantRow.learner_id == learner_id,
                    AchievementGrantRow.achievement_id == achievement_id,
                )
            ).first()

        def op() -> AchievementGrant:
            row = existing()
            if row is not None:
                return grant_from_row(row)
            row = AchievementGrantRow(learner_id=learner_id, achievement_id=achievement_id, earned_at=datetime.utcnow())
            self.db.add(row)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                row = existing()
            return grant_from_row(row)
        return self._retry_once(op, "granting achievement")
