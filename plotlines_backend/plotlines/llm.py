import logging
from typing import Optional
from .errors import ConfigurationError, ProviderError
from .models import StoryParameters, StoryText
from .parsing import parse_story
from .prompts import (
    IMAGE_TERMS_INSTRUCTIONS,
    STORY_PROMPT_TEMPLATE,
    STORY_SCHEMA,
    STRUCTURED_PROMPT_TEMPLATE,
    SYSTEM_PROMPT,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

def build_user_prompt(req: StoryParameters, structured: bool = True) -> str:
    story_prompt = STORY_PROMPT_TEMPLATE.format(
        character_name=req.character_name,
        perspective=req.person_perspective.value,
        motivating_interest=req.motivating_interest,
        category=req.category_label,
        specific_activity=req.specific_activity,
        additional_notes=req.additional_notes or "none",
    )
    if not structured:
        return story_prompt
    return STRUCTURED_PROMPT_TEMPLATE.format(
        story_prompt=story_prompt,
        image_terms=IMAGE_TERMS_INSTRUCTIONS,
        schema=STORY_SCHEMA,
    )

class StoryLLM:
    """
    Text-generation provider wrapper.

    One instance is built per process and passed to whoever needs it. The
    OpenAI client is only created on first use, so a missing key surfaces as a
    ConfigurationError on the first generation request rather than at startup.
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 structured: bool = True, client=None):
        self.api_key = api_key
        self.model = model or DEFAULT_MODEL
        self.structured = structured
        self._client = client

    def _get_client(self):
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError("OPENAI_API_KEY")
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def complete(self, prompt: str) -> str:
        client = self._get_client()
        logger.info(f"Calling OpenAI API ({self.model}) to generate story text")
        kwargs = {}
        if self.structured:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            resp = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.6,
                max_tokens=1500,
                **kwargs,
            )
            content = resp.choices[0].message.content if resp.choices else None
        except Exception as e:
            logger.error(f"OpenAI API call failed: {str(e)}")
            raise ProviderError(f"OpenAI API call failed: {str(e)}") from e

        content = (content or "").strip()
        if not content:
            raise ProviderError("OpenAI returned empty content.")
        logger.info("Successfully received response from OpenAI")
        return content

    async def derive(self, req: StoryParameters) -> StoryText:
        text = await self.complete(build_user_prompt(req, self.structured))
        story_text = parse_story(text)
        logger.info(f"Parsed story text with {len(story_text.steps)} steps")
        return story_text
