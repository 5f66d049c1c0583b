"""
Recovering the intro / ten steps / conclusion shape from provider output.

Structured (JSON) output is validated against a schema. Anything else goes
through a line parser that tolerates soft-wrapped steps, extra numbered items
and off-by-one numbering.
"""
import json
import logging
import re
from typing import List, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator
from .errors import StoryParseError
from .models import STEP_COUNT, Perspective, StoryParameters, StoryText

logger = logging.getLogger(__name__)

STEP_LINE_RE = re.compile(r"^\d+[.)\-]\s+")
STEP_MARKER_RE = re.compile(r"^\s*\d{1,2}[.)\-]\s*")
FENCE_RE = re.compile(r"^```[\w+-]*\s*(.*?)\s*```$", re.DOTALL)

class StructuredStoryBody(BaseModel):
    intro: str = ""
    steps: List[str] = Field(default_factory=list)
    conclusion: str = ""

    @field_validator("intro", "conclusion", mode="before")
    @classmethod
    def _text(cls, value):
        return "" if value is None else str(value)

    @field_validator("steps", mode="before")
    @classmethod
    def _steps(cls, value):
        if not isinstance(value, list):
            return []
        return ["" if v is None else str(v) for v in value]

class StructuredImages(BaseModel):
    coverTerms: List[str] = Field(default_factory=list)
    stepTerms: List[List[str]] = Field(default_factory=list)

    @field_validator("coverTerms", mode="before")
    @classmethod
    def _cover_terms(cls, value):
        return [str(v) for v in value] if isinstance(value, list) else []

    @field_validator("stepTerms", mode="before")
    @classmethod
    def _step_terms(cls, value):
        if not isinstance(value, list):
            return []
        return [[str(v) for v in terms] if isinstance(terms, list) else [] for terms in value]

class StructuredStory(BaseModel):
    story: StructuredStoryBody
    images: StructuredImages = Field(default_factory=StructuredImages)

    @field_validator("story", "images", mode="before")
    @classmethod
    def _sections(cls, value):
        return value if isinstance(value, dict) else {}

def is_step_line(line: str) -> bool:
    return bool(STEP_LINE_RE.match(line))

def strip_step_marker(line: str) -> str:
    return STEP_MARKER_RE.sub("", line).strip()

def parse_story_text(text: str) -> StoryText:
    lines = [line.strip() for line in text.splitlines() if line.strip()]

    intro: List[str] = []
    steps: List[str] = []
    conclusion: List[str] = []
    for line in lines:
        if conclusion:
            conclusion.append(line)
        elif is_step_line(line):
            steps.append(line)
        elif not steps:
            intro.append(line)
        elif len(steps) < STEP_COUNT:
            # soft-wrapped step
            steps[-1] = f"{steps[-1]} {line}"
        else:
            conclusion.append(line)

    if len(steps) > STEP_COUNT:
        logger.info(f"Moving {len(steps) - STEP_COUNT} extra numbered lines into the conclusion")
        conclusion = steps[STEP_COUNT:] + conclusion
        steps = steps[:STEP_COUNT]
    elif len(steps) < STEP_COUNT:
        logger.info(f"Only {len(steps)} steps found, re-scanning for numbered lines")
        steps = [line for line in lines if is_step_line(line)][:STEP_COUNT]

    if len(steps) != STEP_COUNT:
        raise StoryParseError(len(steps), STEP_COUNT)

    return StoryText(
        intro=" ".join(intro).strip(),
        steps=steps,
        conclusion=" ".join(conclusion).strip(),
    )

def _load_structured(text: str) -> Optional[StructuredStory]:
    candidate = text.strip()
    # Some models wrap JSON in a Markdown fence despite being told not to
    fenced = FENCE_RE.match(candidate)
    if fenced:
        candidate = fenced.group(1)
    try:
        data = json.loads(candidate)
    except ValueError:
        return None
    if not isinstance(data, dict) or "story" not in data:
        return None
    try:
        return StructuredStory.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Structured output did not match the story schema: {e}")
        steps = data["story"].get("steps") if isinstance(data["story"], dict) else None
        raise StoryParseError(len(steps) if isinstance(steps, list) else 0, STEP_COUNT) from e

def parse_story(text: str) -> StoryText:
    """Parse provider output, preferring the structured JSON shape."""
    structured = _load_structured(text)
    if structured is None:
        return parse_story_text(text)

    steps = [s.strip() for s in structured.story.steps if s.strip()]
    if len(steps) != STEP_COUNT:
        raise StoryParseError(len(steps), STEP_COUNT)

    step_terms = [list(terms) for terms in structured.images.stepTerms[:STEP_COUNT]]
    while len(step_terms) < STEP_COUNT:
        step_terms.append([])

    return StoryText(
        intro=structured.story.intro.strip(),
        steps=steps,
        conclusion=structured.story.conclusion.strip(),
        cover_terms=list(structured.images.coverTerms),
        step_terms=step_terms,
    )

def assemble_story_text(story_text: StoryText) -> str:
    return f"{story_text.intro}\n\n" + "\n".join(story_text.steps) + f"\n\n{story_text.conclusion}"

def generate_story_title(request: StoryParameters) -> str:
    activity = request.specific_activity.strip()
    activity = activity[0].upper() + activity[1:] if activity else "Activity"
    if request.person_perspective == Perspective.FIRST:
        return f"My Guide to {activity}"
    return f"{request.character_name}'s Guide to {activity}"
