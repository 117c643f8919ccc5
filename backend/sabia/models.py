from __future__ import annotations
from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from .db import Base


class LearnerRow(Base):
	__tablename__ = "learners"
	id = Column(Integer, primary_key=True, autoincrement=True)
	username = Column(String(128), unique=True, nullable=False, index=True)
	role = Column(String(16), default="student", nullable=False)
	xp = Column(Integer, default=0, nullable=False)
	level = Column(Integer, default=1, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class DiagnosticQuestionRow(Base):
	__tablename__ = "diagnostic_questions"
	id = Column(Integer, primary_key=True, autoincrement=True)
	area = Column(String(32), nullable=False, index=True)
	prompt = Column(Text, nullable=False)
	options = Column(JSON, nullable=False)  # list of option strings
	correct_option_index = Column(Integer, nullable=False)
	difficulty = Column(Integer, default=1, nullable=False)
	# Questions of an area are asked in (position, id) order
	position = Column(Integer, default=0, nullable=False)


class LearningPathRow(Base):
	__tablename__ = "learning_paths"
	id = Column(Integer, primary_key=True, autoincrement=True)
	title = Column(String(256), nullable=False)
	area = Column(String(32), nullable=False)
	difficulty = Column(Integer, default=1, nullable=False)
	required_level = Column(Integer, default=1, nullable=False)


class MissionRow(Base):
	__tablename__ = "missions"
	id = Column(Integer, primary_key=True, autoincrement=True)
	title = Column(String(256), nullable=False)
	area = Column(String(32), nullable=False, index=True)
	difficulty = Column(Integer, default=1, nullable=False)
	xp_reward = Column(Integer, default=50, nullable=False)
	path_id = Column(Integer, ForeignKey("learning_paths.id"), nullable=False)
	steps = Column(JSON, nullable=False)  # list of step objects tagged by "kind"
	sequence = Column(Integer, nullable=False)


class AchievementRow(Base):
	__tablename__ = "achievements"
	id = Column(Integer, primary_key=True, autoincrement=True)
	title = Column(String(256), nullable=False)
	description = Column(Text, nullable=False, default="")
	area = Column(String(32), nullable=True)
	criteria = Column(JSON, nullable=False)


class ProgressRow(Base):
	__tablename__ = "progress_records"
	# One row per learner and mission; retried inserts collide here
	__table_args__ = (UniqueConstraint("learner_id", "mission_id", name="uq_progress_learner_mission"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	learner_id = Column(Integer, ForeignKey("learners.id"), nullable=False, index=True)
	mission_id = Column(Integer, ForeignKey("missions.id"), nullable=False)
	completed = Column(Boolean, default=False, nullable=False)
	score = Column(Integer, nullable=True)
	attempts = Column(Integer, default=1, nullable=False)
	completed_at = Column(DateTime, nullable=True)
	feedback = Column(Text, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AreaResultRow(Base):
	__tablename__ = "area_results"
	# Append-only; a later diagnostic run adds rows instead of replacing them
	id = Column(Integer, primary_key=True, autoincrement=True)
	learner_id = Column(Integer, ForeignKey("learners.id"), nullable=False, index=True)
	run_id = Column(String(64), nullable=True)
	area = Column(String(32), nullable=False)
	score_percent = Column(Integer, nullable=False)
	recommended_difficulty = Column(Integer, nullable=False)
	completed_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class AchievementGrantRow(Base):
	__tablename__ = "achievement_grants"
	__table_args__ = (UniqueConstraint("learner_id", "achievement_id", name="uq_grant_learner_achievement"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	learner_id = Column(Integer, ForeignKey("learners.id"), nullable=False, index=True)
	achievement_id = Column(Integer, ForeignKey("achievements.id"), nullable=False)
	earned_at = Column(DateTime, default=datetime.utcnow, nullable=False)
