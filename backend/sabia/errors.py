"""Engine error kinds.

Every error carries the HTTP status the API layer answers with, so the
FastAPI exception handler in ``main`` can render them uniformly.
"""
from __future__ import annotations


class EngineError(Exception):
	status_code = 400

	def __init__(self, message: str) -> None:
		super().__init__(message)
		self.message = message


class EmptyAreaError(EngineError):
	# Catalogue misconfiguration, not something the learner can fix
	status_code = 500

	def __init__(self, area: str) -> None:
		super().__init__(f"No diagnostic questions configured for area '{area}'")
		self.area = area


class UnansweredQuestionError(EngineError):
	def __init__(self, question_id: int) -> None:
		super().__init__(f"Question {question_id} has no recorded answer")
		self.question_id = question_id


class NoActiveQuestionError(EngineError):
	def __init__(self) -> None:
		super().__init__("Diagnostic session is already complete")


class InvalidAnswerError(EngineError):
	pass


class InvalidScoreError(EngineError):
	def __init__(self, score: int) -> None:
		super().__init__(f"score must be between 0 and 100, got {score}")
		self.score = score


class PersistenceError(EngineError):
	status_code = 503


class SessionNotFoundError(EngineError):
	status_code = 404

	def __init__(self, session_id: str) -> None:
		super().__init__("Session not found")
		self.session_id = session_id


class LearnerNotFoundError(EngineError):
	status_code = 404

	def __init__(self, learner_id: int) -> None:
		super().__init__(f"Learner {learner_id} not found")
		self.learner_id = learner_id


class ProgressNotFoundError(EngineError):
	status_code = 404

	def __init__(self, learner_id: int, mission_id: int) -> None:
		super().__init__(f"Learner {learner_id} has no progress on mission {mission_id}")
		self.learner_id = learner_id
		self.mission_id = mission_id


class MissionNotFoundError(EngineError):
	status_code = 404

	def __init__(self, mission_id: int) -> None:
		super().__init__(f"Mission {mission_id} not found")
		self.mission_id = mission_id
