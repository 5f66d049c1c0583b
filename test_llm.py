"""Tests for the text-generation provider wrapper and prompt construction."""
import asyncio
import pytest
from pydantic import ValidationError

from conftest import FakeOpenAI, plain_story, structured_story
from plotlines.errors import ConfigurationError, ProviderError, StoryParseError
from plotlines.llm import StoryLLM, build_user_prompt
from plotlines.models import Perspective, StoryParameters


def test_prompt_interpolates_parameters(sam_request):
    prompt = build_user_prompt(sam_request, structured=False)
    assert '"Sam"' in prompt
    assert "third person perspective" in prompt
    assert '"trains"' in prompt
    assert '"daily living"' in prompt
    assert '"washing hands"' in prompt
    assert '"none"' in prompt
    assert "Exactly 10 steps" in prompt
    assert "Schema" not in prompt


def test_structured_prompt_adds_schema_and_image_terms(sam_request):
    prompt = build_user_prompt(sam_request, structured=True)
    assert "coverTerms" in prompt
    assert "stepTerms" in prompt
    assert "Return ONLY valid JSON" in prompt


def test_prompt_uses_custom_category_for_other():
    req = StoryParameters(
        character_name="Ava",
        motivating_interest="dinosaurs",
        story_category="other",
        custom_category="holiday travel",
        specific_activity="boarding a plane",
        additional_notes="Ava uses headphones",
    )
    prompt = build_user_prompt(req, structured=False)
    assert '"holiday travel"' in prompt
    assert '"Ava uses headphones"' in prompt
    assert req.person_perspective == Perspective.FIRST


def test_other_category_requires_custom_category():
    with pytest.raises(ValidationError):
        StoryParameters(
            character_name="Ava",
            motivating_interest="dinosaurs",
            story_category="other",
            specific_activity="boarding a plane",
        )


def test_parameters_accept_camel_case_and_are_frozen():
    req = StoryParameters.model_validate({
        "characterName": "Sam",
        "personPerspective": "third",
        "motivatingInterest": "trains",
        "storyCategory": "social_skills",
        "specificActivity": "saying hello",
    })
    assert req.person_perspective == Perspective.THIRD
    with pytest.raises(ValidationError):
        req.character_name = "Max"


def test_missing_credential_fails_before_any_call(sam_request):
    llm = StoryLLM(api_key="")
    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
        asyncio.run(llm.derive(sam_request))


def test_derive_makes_one_call_and_parses(sam_request):
    client = FakeOpenAI(plain_story())
    llm = StoryLLM(api_key="test-key", model="gpt-test", structured=False, client=client)
    story_text = asyncio.run(llm.derive(sam_request))
    assert len(story_text.steps) == 10
    calls = client.chat.completions.calls
    assert len(calls) == 1
    assert calls[0]["model"] == "gpt-test"
    assert "response_format" not in calls[0]


def test_structured_mode_requests_json(sam_request):
    client = FakeOpenAI(structured_story())
    llm = StoryLLM(api_key="test-key", client=client)
    story_text = asyncio.run(llm.derive(sam_request))
    assert story_text.cover_terms
    assert client.chat.completions.calls[0]["response_format"] == {"type": "json_object"}


def test_default_model():
    assert StoryLLM(api_key="k").model == "gpt-4o-mini"


def test_provider_failure_is_wrapped(sam_request):
    llm = StoryLLM(api_key="test-key", client=FakeOpenAI(error=RuntimeError("quota exceeded")))
    with pytest.raises(ProviderError, match="quota exceeded") as exc:
        asyncio.run(llm.derive(sam_request))
    assert isinstance(exc.value.__cause__, RuntimeError)


def test_empty_content_is_a_provider_error(sam_request):
    llm = StoryLLM(api_key="test-key", client=FakeOpenAI("   "))
    with pytest.raises(ProviderError, match="empty content"):
        asyncio.run(llm.derive(sam_request))


def test_six_steps_is_a_parse_error(sam_request):
    llm = StoryLLM(api_key="test-key", structured=False, client=FakeOpenAI(plain_story(6)))
    with pytest.raises(StoryParseError, match="Expected 10 steps, got 6"):
        asyncio.run(llm.derive(sam_request))
