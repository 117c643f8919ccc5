from fastapi import APIRouter

from ..deps import session_store
from ..settings import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
	return {
		"status": "ok",
		"feedback_configured": bool(settings.gemini_api_key),
		"active_sessions": len(session_store),
	}
