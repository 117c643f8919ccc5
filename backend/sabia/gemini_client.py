from __future__ import annotations
import httpx
from typing import Any, Dict, Optional, Tuple
from .settings import settings


def gemini_endpoint(model: str) -> Tuple[str, bool]:
	"""URL for ``generateContent`` and whether the key travels in the query string."""
	if settings.gemini_provider == "vertex":
		region = settings.vertex_region
		project = settings.vertex_project or "placeholder-project"
		return (
			f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}"
			f"/publishers/google/models/{model}:generateContent",
			False,
		)
	return f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent", True


def extract_text(data: Dict[str, Any]) -> str:
	return data["candidates"][0]["content"]["parts"][0]["text"]


class GeminiClient:
	"""Text generation over Gemini, with OpenRouter as secondary provider when a key is set."""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		timeout: float = 30,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		default_url, self._auth_in_query = gemini_endpoint(self.model)
		self.base_url = base_url or default_url
		self._openrouter_key = settings.openrouter_api_key
		self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

	async def __aenter__(self) -> "GeminiClient":
		return self

	async def __aexit__(self, *exc_info: Any) -> None:
		await self.aclose()

	async def aclose(self) -> None:
		await self._http.aclose()

	def _auth(self) -> Tuple[Dict[str, str], Dict[str, str]]:
		if self._auth_in_query:
			return {"key": self.api_key}, {}
		return {}, {"x-goog-api-key": self.api_key}

	async def generate(self, prompt: str, *, max_output_tokens: Optional[int] = None, temperature: Optional[float] = None) -> str:
		payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
		config: Dict[str, Any] = {}
		if max_output_tokens is not None:
			config["maxOutputTokens"] = max_output_tokens
		if temperature is not None:
			config["temperature"] = temperature
		if config:
			payload["generationConfig"] = config
		params, headers = self._auth()
		try:
			r = await self._http.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
			return extract_text(r.json())
		except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as err:
			if not self._openrouter_key:
				raise
			return await self._openrouter_generate(prompt, err)

	async def _openrouter_generate(self, prompt: str, primary_error: Exception) -> str:
		headers = {
			"Authorization": f"Bearer {self._openrouter_key}",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		payload = {"model": settings.openrouter_model, "messages": [{"role": "user", "content": prompt}]}
		try:
			r = await self._http.post(settings.openrouter_base_url, headers=headers, json=payload)
			r.raise_for_status()
			return r.json()["choices"][0]["message"]["content"]
		except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as err:
			raise RuntimeError(
				f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed"
			) from err
