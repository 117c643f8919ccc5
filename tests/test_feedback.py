"""Tests for generated feedback text and its static fallback."""
import json

import httpx
import pytest

from factories import FailingFeedback, RecordingFeedback, SlowFeedback
from sabia.feedback import (
    GeminiFeedbackGenerator,
    StaticFeedbackGenerator,
    fallback_mission_feedback,
    fallback_recommendation,
    mission_feedback_with_fallback,
    recommend_with_fallback,
)
from sabia.gemini_client import GeminiClient


def test_fallback_recommendation_tiers():
    assert fallback_recommendation("overall", 10).startswith("Based on your performance in overall, we recommend starting")
    assert "intermediate" in fallback_recommendation("mathematics", 30)
    assert "intermediate" in fallback_recommendation("mathematics", 69)
    assert "advanced" in fallback_recommendation("mathematics", 70)


def test_fallback_mission_feedback_tiers():
    assert fallback_mission_feedback(100).startswith("Outstanding work, adventurer!")
    assert fallback_mission_feedback(29) != fallback_mission_feedback(30)


@pytest.mark.asyncio
async def test_generated_text_is_returned_stripped():
    generator = RecordingFeedback("  Hail, traveller!\n")
    text = await recommend_with_fallback(generator, "overall", 63, [{"question_id": 1, "answer": 0}])
    assert text == "Hail, traveller!"
    assert generator.calls == [("recommendation", "overall", 63, [{"question_id": 1, "answer": 0}])]


@pytest.mark.asyncio
async def test_failure_uses_fallback():
    text = await recommend_with_fallback(FailingFeedback(), "overall", 20, [])
    assert text == fallback_recommendation("overall", 20)


@pytest.mark.asyncio
async def test_timeout_uses_fallback():
    text = await mission_feedback_with_fallback(SlowFeedback(), "Quest", "arts", 50, 1, [], timeout=0.05)
    assert text == fallback_mission_feedback(50)


@pytest.mark.asyncio
async def test_blank_text_uses_fallback():
    text = await mission_feedback_with_fallback(RecordingFeedback("   "), "Quest", "arts", 85, 2, [])
    assert text == fallback_mission_feedback(85)


@pytest.mark.asyncio
async def test_static_generator():
    generator = StaticFeedbackGenerator()
    assert await generator.generate_recommendation("overall", 90, []) == fallback_recommendation("overall", 90)
    assert await generator.generate_mission_feedback("Quest", "arts", 10, 1, []) == fallback_mission_feedback(10)


def _gemini_factory(handler):
    transport = httpx.MockTransport(handler)
    return lambda: GeminiClient(api_key="test-key", base_url="https://gemini.test/generate", transport=transport)


@pytest.mark.asyncio
async def test_gemini_generator_sends_prompt_and_reads_text():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "Brave scholar, onward!"}]}}]})

    generator = GeminiFeedbackGenerator(_gemini_factory(handler))
    text = await generator.generate_recommendation("overall", 55, [{"question_id": 4, "answer": 2}])

    assert text == "Brave scholar, onward!"
    body = json.loads(seen[0].content)
    prompt = body["contents"][0]["parts"][0]["text"]
    assert "overall" in prompt and "55/100" in prompt
    assert body["generationConfig"] == {"maxOutputTokens": 600, "temperature": 0.7}
    assert seen[0].url.params["key"] == "test-key"


@pytest.mark.asyncio
async def test_gemini_error_falls_back_to_static_text():
    def handler(request):
        return httpx.Response(503, json={"error": "unavailable"})

    generator = GeminiFeedbackGenerator(_gemini_factory(handler))
    text = await mission_feedback_with_fallback(generator, "Quest", "sciences", 75, 1, {"0": 1})
    assert text == fallback_mission_feedback(75)


def test_client_requires_key():
    with pytest.raises(ValueError):
        GeminiClient(api_key=None)
