from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

from .schemas import SubjectArea

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="SABIA Learning Quest", validation_alias="OPENROUTER_TITLE")

	# Seconds to wait for generated recommendation text before using the static fallback
	feedback_timeout_seconds: float = Field(default=20.0, validation_alias="FEEDBACK_TIMEOUT_SECONDS")

	# Progression
	xp_per_level: int = Field(default=1000, gt=0, validation_alias="XP_PER_LEVEL")
	diagnostic_areas: List[SubjectArea] = Field(default_factory=lambda: list(SubjectArea), validation_alias="DIAGNOSTIC_AREAS")

	# Diagnostic sessions idle longer than this are purged from memory
	session_ttl_minutes: int = Field(default=120, validation_alias="SESSION_TTL_MINUTES")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")
	seed_catalogue: bool = Field(default=True, validation_alias="SEED_CATALOGUE")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
