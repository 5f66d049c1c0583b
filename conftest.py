from types import SimpleNamespace
import json
import httpx
import pytest
from fastapi.testclient import TestClient

from plotlines.app import app, get_http_client, get_pipeline
from plotlines.illustrations import IllustrationResolver
from plotlines.llm import StoryLLM
from plotlines.models import StoryParameters
from plotlines.orchestrator import StoryPipeline


STEPS = [
    "Sam walks to the bathroom sink, just like a train pulling into the station.",
    "Sam turns on the water.",
    "Sam wets both hands.",
    "Sam pumps the soap once.",
    "Sam rubs the soap into bubbles.",
    "Sam scrubs the backs of the hands and between the fingers.",
    "Sam counts to twenty while scrubbing.",
    "Sam rinses the soap away.",
    "Sam turns off the water.",
    "Sam dries both hands with a towel.",
]

INTRO = "Sam loves trains. Trains keep their wheels clean so they can go fast."
CONCLUSION = "Clean hands help Sam stay healthy, all aboard!"


def story_lines(count=10, marker="."):
    return [f"{i}{marker} {STEPS[(i - 1) % len(STEPS)]}" for i in range(1, count + 1)]


def plain_story(count=10):
    return "\n".join([INTRO, "", *story_lines(count), "", CONCLUSION])


def structured_story(count=10, step_terms=True):
    images = {"coverTerms": ["cartoon train", "hand washing illustration"]}
    if step_terms:
        images["stepTerms"] = [[f"cartoon step {i}"] for i in range(1, count + 1)]
    return json.dumps({
        "story": {"intro": INTRO, "steps": story_lines(count), "conclusion": CONCLUSION},
        "images": images,
    })


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    def __init__(self, content=None, error=None):
        self.chat = SimpleNamespace(completions=FakeCompletions(content, error))


def unreachable_transport():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)
    return httpx.MockTransport(handler)


@pytest.fixture(name="sam_request")
def sam_request_fixture():
    return StoryParameters(
        character_name="Sam",
        person_perspective="third-person",
        motivating_interest="trains",
        story_category="daily_living",
        specific_activity="washing hands",
    )


@pytest.fixture(name="offline_resolver")
def offline_resolver_fixture():
    return IllustrationResolver(httpx.AsyncClient(transport=unreachable_transport()))


@pytest.fixture(name="client")
def client_fixture():
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="use_pipeline")
def use_pipeline_fixture():
    """Install a pipeline answering with the given provider output."""

    def install(content=None, error=None, structured=False, resolver=None, api_key="test-key"):
        client = FakeOpenAI(content, error) if api_key else None
        llm = StoryLLM(api_key=api_key, structured=structured, client=client)
        resolver = resolver or IllustrationResolver(httpx.AsyncClient(transport=unreachable_transport()))
        pipeline = StoryPipeline(llm, resolver)
        app.dependency_overrides[get_pipeline] = lambda: pipeline
        return pipeline

    return install


@pytest.fixture(name="use_http_client")
def use_http_client_fixture():
    def install(handler):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        app.dependency_overrides[get_http_client] = lambda: http_client
        return http_client

    return install
