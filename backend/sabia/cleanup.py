from __future__ import annotations
import logging
from datetime import datetime, timedelta

from .diagnostic import SessionStore


logger = logging.getLogger(__name__)


def purge_idle_sessions(store: SessionStore, ttl_minutes: int, now: datetime | None = None) -> int:
	# Abandoned diagnostics never reach Complete, so they would otherwise live forever
	threshold = (now or datetime.utcnow()) - timedelta(minutes=ttl_minutes)
	removed = store.purge_idle(threshold)
	if removed:
		logger.info("Purged %d idle diagnostic sessions", removed)
	return removed
