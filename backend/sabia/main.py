import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .cleanup import purge_idle_sessions
from .db import Base, SessionLocal, engine
from .deps import session_store
from .errors import EngineError
from .routers import achievements, diagnostic, health, missions
from .seed import seed_all
from .settings import settings

logger = logging.getLogger(__name__)

app = FastAPI(title="SABIA Progress Engine")
app.include_router(health.router)
app.include_router(diagnostic.router)
app.include_router(missions.router)
app.include_router(achievements.router)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
	if exc.status_code >= 500:
		logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
	return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def _cleanup_watcher():
	while True:
		await asyncio.sleep(60 * 60)
		purge_idle_sessions(session_store, settings.session_ttl_minutes)


@app.on_event("startup")
async def startup_event():
	logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	if settings.seed_catalogue:
		db = SessionLocal()
		try:
			seed_all(db)
		finally:
			db.close()
	purge_idle_sessions(session_store, settings.session_ttl_minutes)
	# Start periodic cleanup loop
	asyncio.create_task(_cleanup_watcher())
