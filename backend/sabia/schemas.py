"""Value types shared by the engine, the gateway and the HTTP layer."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SubjectArea(str, Enum):
    mathematics = "mathematics"
    languages = "languages"
    sciences = "sciences"
    history = "history"
    geography = "geography"
    arts = "arts"


class LearnerRole(str, Enum):
    student = "student"
    teacher = "teacher"
    manager = "manager"


# Difficulty tiers
INTRODUCTORY = 1
INTERMEDIATE = 2
ADVANCED = 3


class Learner(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    role: LearnerRole = LearnerRole.student
    xp: int = 0
    level: int = 1


class DiagnosticQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    area: SubjectArea
    prompt: str
    options: List[str]
    correct_option_index: int
    difficulty: int = 1


class AreaResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    area: SubjectArea
    score_percent: int = Field(ge=0, le=100)
    recommended_difficulty: int = Field(ge=INTRODUCTORY, le=ADVANCED)


class MultipleChoiceStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["multiple_choice"] = "multiple_choice"
    prompt: str
    options: List[str]
    correct_option_index: int


class FreeTextStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["free_text"] = "free_text"
    prompt: str
    # Empty means any non-blank response is accepted
    expected_keywords: List[str] = Field(default_factory=list)


MissionStep = Annotated[Union[MultipleChoiceStep, FreeTextStep], Field(discriminator="kind")]


class Mission(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    area: SubjectArea
    difficulty: int = INTRODUCTORY
    xp_reward: int = 50
    path_id: int
    steps: List[MissionStep] = Field(default_factory=list)
    sequence: int = 1
    # Taken from the mission's learning path
    required_level: int = 1


class AchievementCriteria(BaseModel):
    """Requirement description stored as JSON on the achievement.

    Keys use the catalogue's camelCase spelling. Keys this model does not know
    about end up in ``model_extra`` and make the criteria unsatisfiable.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    area: Optional[SubjectArea] = None
    completed_missions: Optional[int] = Field(default=None, alias="completedMissions")
    min_score: Optional[int] = Field(default=None, alias="minScore")
    path_id: Optional[int] = Field(default=None, alias="pathId")
    # Accepted with pathId for catalogue compatibility; pathId alone already means "every mission done"
    completed: Optional[bool] = None
    min_level: Optional[int] = Field(default=None, alias="minLevel")
    min_diagnostic_score: Optional[int] = Field(default=None, alias="minDiagnosticScore")
    # At least one completed mission in every subject area
    all_areas: Optional[bool] = Field(default=None, alias="allAreas")


class Achievement(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: str = ""
    area: Optional[SubjectArea] = None
    criteria: AchievementCriteria = Field(default_factory=AchievementCriteria)


class ProgressRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    learner_id: int
    mission_id: int
    completed: bool = False
    score: Optional[int] = None
    attempts: int = Field(default=1, ge=1)
    completed_at: Optional[datetime] = None
    feedback: Optional[str] = None


class AchievementGrant(BaseModel):
    model_config = ConfigDict(frozen=True)

    learner_id: int
    achievement_id: int
    earned_at: datetime
