"""
Story generation exceptions.

Everything raised on the generation path derives from StoryGenerationError so
the request boundary can map it to a single error response. Illustration
lookups never raise; they degrade to the next provider or a placeholder.
"""


class StoryGenerationError(RuntimeError):
    """Base exception for all story generation failures."""
    pass


class ConfigurationError(StoryGenerationError):
    """Raised when a required setting is missing at the time it is used."""

    def __init__(self, setting: str):
        self.setting = setting
        super().__init__(f"{setting} is not set; please configure your .env")


class ProviderError(StoryGenerationError):
    """
    Raised when the text-generation provider cannot be reached, rejects the
    request, or answers with an empty body.
    """
    pass


class StoryParseError(StoryGenerationError):
    """Raised when provider output cannot be coerced into exactly ten steps."""

    def __init__(self, step_count: int, expected: int = 10):
        self.step_count = step_count
        self.expected = expected
        super().__init__(f"Expected {expected} steps, got {step_count}")
