from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

STEP_COUNT = 10

class CamelModel(BaseModel):
    # The viewer speaks camelCase JSON
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class Perspective(str, Enum):
    FIRST = "first"
    THIRD = "third"

class StoryCategory(str, Enum):
    DAILY_LIVING = "daily_living"
    SOCIAL_SKILLS = "social_skills"
    EMOTIONAL_REGULATION = "emotional_regulation"
    MOTOR_SKILLS = "motor_skills"
    SENSORY_REGULATION = "sensory_regulation"
    COMMUNICATION = "communication"
    COMMUNITY_PARTICIPATION = "community_participation"
    OTHER = "other"

class StoryParameters(CamelModel):
    model_config = ConfigDict(frozen=True)

    character_name: str = Field(min_length=1)
    person_perspective: Perspective = Perspective.FIRST
    motivating_interest: str = Field(min_length=1)
    story_category: StoryCategory
    custom_category: Optional[str] = None
    specific_activity: str = Field(min_length=1)
    additional_notes: Optional[str] = None

    @field_validator("person_perspective", mode="before")
    @classmethod
    def _normalize_perspective(cls, value):
        if isinstance(value, str):
            value = value.strip().lower().replace("_", "-")
            if value.endswith("-person"):
                value = value[: -len("-person")]
        return value

    @model_validator(mode="after")
    def _custom_category_for_other(self):
        if self.story_category == StoryCategory.OTHER and not (self.custom_category or "").strip():
            raise ValueError("customCategory is required when storyCategory is 'other'")
        return self

    @property
    def category_label(self) -> str:
        if self.story_category == StoryCategory.OTHER:
            return self.custom_category.strip()
        return self.story_category.value.replace("_", " ")

class IllustrationReference(CamelModel):
    url: str
    attribution: Optional[str] = None

class StoryText(BaseModel):
    intro: str
    # Each step keeps its leading "N." marker
    steps: List[str]
    conclusion: str
    cover_terms: List[str] = Field(default_factory=list)
    step_terms: List[List[str]] = Field(default_factory=list)

class StoryStep(CamelModel):
    step_number: int = Field(ge=1, le=STEP_COUNT)
    step_text: str
    image_url: Optional[str] = None
    attribution: Optional[str] = None

class GeneratedStory(CamelModel):
    id: str
    title: str
    story: str
    image_url: Optional[str] = None
    image_attribution: Optional[str] = None
    step_images: List[StoryStep] = Field(min_length=STEP_COUNT, max_length=STEP_COUNT)
    request: StoryParameters
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class OrchestrationState(BaseModel):
    request: StoryParameters
    proxy_base: Optional[str] = None
    story_text: Optional[StoryText] = None
    cover: Optional[IllustrationReference] = None
    step_illustrations: List[IllustrationReference] = Field(default_factory=list)
    story: Optional[GeneratedStory] = None
