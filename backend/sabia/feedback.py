"""Generated recommendation and mission feedback text.

The engine treats the generated text as opaque. Any failure or timeout of the
generator is replaced by a fixed message chosen from the score tier, so a
diagnostic or mission never fails because the text service is down.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence

from .gemini_client import GeminiClient
from .scoring import score_tier
from .settings import settings


logger = logging.getLogger(__name__)


class FeedbackGenerator(Protocol):
    async def generate_recommendation(self, area: str, average_score: int, answers: Sequence[Mapping[str, Any]]) -> str: ...


class MissionFeedbackGenerator(Protocol):
    async def generate_mission_feedback(
        self, mission_title: str, area: str, score: int, attempts: int, answers: Any
    ) -> str: ...


_RECOMMENDATION_BY_TIER = {
    "low": "we recommend starting with the introductory paths to strengthen your foundations.",
    "medium": "we recommend the intermediate paths, focused on consolidating the core concepts.",
    "high": "we recommend the advanced paths, with challenges that will stretch your knowledge even further.",
}

_MISSION_FEEDBACK_BY_TIER = {
    "low": "Every hero stumbles on the first climb. Review this mission's steps and try again, your next attempt will go further.",
    "medium": "A solid journey, adventurer. Revisit the steps you missed and you will master this quest.",
    "high": "Outstanding work, adventurer! You have mastered this quest. A tougher challenge awaits you.",
}


def fallback_recommendation(area: str, average_score: int) -> str:
    return f"Based on your performance in {area}, {_RECOMMENDATION_BY_TIER[score_tier(average_score)]}"


def fallback_mission_feedback(score: int) -> str:
    return _MISSION_FEEDBACK_BY_TIER[score_tier(score)]


async def _with_fallback(call: Callable[[], Any], fallback: str, timeout: Optional[float], what: str) -> str:
    try:
        text = await asyncio.wait_for(call(), timeout)
    except Exception as err:
        logger.warning("Using static %s; generator failed: %r", what, err)
        return fallback
    if not isinstance(text, str) or not text.strip():
        logger.warning("Using static %s; generator returned no text", what)
        return fallback
    return text.strip()


async def recommend_with_fallback(
    generator: FeedbackGenerator,
    area: str,
    average_score: int,
    answers: Sequence[Mapping[str, Any]],
    timeout: Optional[float] = None,
) -> str:
    return await _with_fallback(
        lambda: generator.generate_recommendation(area, average_score, answers),
        fallback_recommendation(area, average_score),
        timeout,
        "recommendation",
    )


async def mission_feedback_with_fallback(
    generator: MissionFeedbackGenerator,
    mission_title: str,
    area: str,
    score: int,
    attempts: int,
    answers: Any,
    timeout: Optional[float] = None,
) -> str:
    return await _with_fallback(
        lambda: generator.generate_mission_feedback(mission_title, area, score, attempts, answers),
        fallback_mission_feedback(score),
        timeout,
        "mission feedback",
    )


class StaticFeedbackGenerator:
    """Deterministic generator: always answers with the tier text."""

    async def generate_recommendation(self, area: str, average_score: int, answers: Sequence[Mapping[str, Any]]) -> str:
        return fallback_recommendation(area, average_score)

    async def generate_mission_feedback(self, mission_title: str, area: str, score: int, attempts: int, answers: Any) -> str:
        return fallback_mission_feedback(score)


def _recommendation_prompt(area: str, average_score: int, answers: Sequence[Mapping[str, Any]]) -> str:
    return (
        "You are an educational counsellor in the SABIA RPG, a medieval-themed learning quest.\n"
        f"Analyse a student's diagnostic results in the area \"{area}\" and give personalised recommendations.\n"
        f"Overall score: {average_score}/100\n"
        f"Diagnostic answers: {json.dumps(list(answers))}\n"
        "Your recommendations must:\n"
        "1. Open with a personal greeting in medieval RPG style\n"
        "2. Analyse the current performance constructively\n"
        "3. Suggest learning paths for the demonstrated level "
        "(introductory if score < 30, intermediate between 30 and 70, advanced above 70)\n"
        "4. Recommend 2-3 missions to begin with\n"
        "5. Close with an encouraging message\n"
        "Use a friendly, motivating tone and RPG metaphors. At most 350 words."
    )


def _mission_feedback_prompt(mission_title: str, area: str, score: int, attempts: int, answers: Any) -> str:
    return (
        "You are the mentor of the SABIA RPG, a medieval-themed learning quest.\n"
        f"A student completed the mission \"{mission_title}\" in the area \"{area}\".\n"
        f"Score: {score}/100. Attempts: {attempts}.\n"
        f"Student answers: {json.dumps(answers, default=str)}\n"
        "Write feedback that opens with a motivating medieval RPG line, names the student's strengths, "
        "suggests specific areas to improve and ends encouraging the next mission. At most 300 words."
    )


class GeminiFeedbackGenerator:
    def __init__(self, client_factory: Callable[[], GeminiClient] = GeminiClient) -> None:
        self._client_factory = client_factory

    async def _generate(self, prompt: str, max_output_tokens: int) -> str:
        async with self._client_factory() as client:
            return await client.generate(prompt, max_output_tokens=max_output_tokens, temperature=0.7)

    async def generate_recommendation(self, area: str, average_score: int, answers: Sequence[Mapping[str, Any]]) -> str:
        return await self._generate(_recommendation_prompt(area, average_score, answers), 600)

    async def generate_mission_feedback(self, mission_title: str, area: str, score: int, attempts: int, answers: Any) -> str:
        return await self._generate(_mission_feedback_prompt(mission_title, area, score, attempts, answers), 500)


def default_feedback_generator():
    if settings.gemini_api_key:
        return GeminiFeedbackGenerator()
    logger.info("GEMINI_API_KEY not set; using static feedback text")
    return StaticFeedbackGenerator()
