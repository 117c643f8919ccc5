from __future__ import annotations
from fastapi import Depends
from sqlalchemy.orm import Session

from .catalogue import SqlCatalogue
from .db import get_db
from .diagnostic import SessionStore
from .engine import Engine
from .feedback import default_feedback_generator
from .gateway import SqlGateway


# Diagnostic sessions live for the life of the process, keyed by session id
session_store = SessionStore()

_feedback_generator = None


def get_session_store() -> SessionStore:
	return session_store


def get_feedback_generator():
	global _feedback_generator
	if _feedback_generator is None:
		_feedback_generator = default_feedback_generator()
	return _feedback_generator


def get_engine(
	db: Session = Depends(get_db),
	sessions: SessionStore = Depends(get_session_store),
	feedback=Depends(get_feedback_generator),
) -> Engine:
	return Engine(SqlGateway(db), SqlCatalogue(db), sessions, feedback)
