"""
Shared pytest fixtures for Mise-En-Plaice tests.

This module provides common fixtures for:
- A scripted stand-in for the AsyncOpenAI chat completions API
- Engine components wired to that fake and a temporary guides directory
- FastAPI test client with component dependency overrides
"""
import asyncio
import os
from types import SimpleNamespace
from typing import Callable, Generator, List, Optional

import pytest

# Set test environment variables BEFORE importing app modules
# This ensures Settings loads in debug mode (rate limiting off) without a key
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("OPENAI_API_KEY", "")

import httpx
from fastapi.testclient import TestClient

from mealprep.api.dependencies import get_components
from mealprep.clients.openai_client import OpenAIClient
from mealprep.config import get_settings
from mealprep.engine.factory import Components, build_components
from mealprep.features import FeatureFlagService, get_feature_flags, get_feature_service
from mealprep.main import app
from mealprep.models.schemas import ParsedRecipe


# ============================================================================
# Fake generative API
# ============================================================================

def make_completion(content: Optional[str]):
    """Build an object shaped like a chat completion response."""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


def make_chunk(content: Optional[str]):
    """Build an object shaped like a streamed chat completion chunk."""
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeStream:
    """Async iterator over stream chunks; an Exception item is raised in place."""

    def __init__(self, items: List):
        self._items = list(items)
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._items:
            raise StopAsyncIteration
        item = self._items.pop(0)
        if isinstance(item, Exception):
            raise item
        return make_chunk(item)

    async def close(self):
        self.closed = True


class FakeChatAPI:
    """
    Stand-in for AsyncOpenAI.

    Either script responses in call order with queue(), or route every call
    through a handler. A response is a string (completion text), a list
    (stream fragments, Exceptions raised mid-stream) or an Exception
    (raised by create()).
    """

    def __init__(self):
        self.calls: List[dict] = []
        self._queue: List = []
        self.handler: Optional[Callable[[dict], object]] = None
        self.streams: List[FakeStream] = []
        self.closed = False
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def queue(self, *responses) -> "FakeChatAPI":
        self._queue.extend(responses)
        return self

    async def _create(self, **kwargs):
        self.calls.append(kwargs)
        await asyncio.sleep(0)
        if self.handler is not None:
            response = self.handler(kwargs)
        elif self._queue:
            response = self._queue.pop(0)
        else:
            raise AssertionError(f"Unexpected generative call: {kwargs.get('model')}")

        if isinstance(response, Exception):
            raise response
        if kwargs.get("stream"):
            stream = FakeStream(response if isinstance(response, list) else [response])
            self.streams.append(stream)
            return stream
        return make_completion(response)

    async def close(self):
        self.closed = True

    @property
    def models(self) -> List[str]:
        return [call["model"] for call in self.calls]


@pytest.fixture
def fake_api() -> FakeChatAPI:
    return FakeChatAPI()


@pytest.fixture
def openai_client(fake_api) -> OpenAIClient:
    """OpenAIClient backed by the fake API."""
    return OpenAIClient(fake_api, model="gpt-4", fallback_model="gpt-3.5-turbo")


@pytest.fixture
def unconfigured_client() -> OpenAIClient:
    """OpenAIClient without an API key."""
    return OpenAIClient(None)


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def guides_dir(tmp_path):
    return tmp_path / "saved-guides"


@pytest.fixture
def test_settings(guides_dir):
    return get_settings(openai_api_key="sk-test", saved_guides_dir=guides_dir, debug=True)


@pytest.fixture
def html_pages():
    """URL -> (status, html) map served by the mock transport. Tests fill it in."""
    return {}


@pytest.fixture
def transport(html_pages) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        status, body = html_pages.get(str(request.url), (404, "Not Found"))
        return httpx.Response(status, text=body, headers={"content-type": "text/html"})

    return httpx.MockTransport(handler)


@pytest.fixture
def make_components(test_settings, openai_client, transport):
    """Factory building components with flag overrides."""

    def _make(client: Optional[OpenAIClient] = None, **flag_overrides) -> Components:
        flags = get_feature_flags(**flag_overrides)
        return build_components(
            test_settings,
            flags,
            client or openai_client,
            transport=transport,
        )

    return _make


@pytest.fixture
def components(make_components) -> Components:
    return make_components()


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def client(components) -> Generator[TestClient, None, None]:
    """
    FastAPI test client with the engine components overridden.

    The lifespan still runs, but every route resolves the components built
    from the fake API and the temporary guides directory.
    """
    app.dependency_overrides[get_components] = lambda: components

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def override_flags():
    """Override the feature flag service used by gated routes."""

    def _override(**flag_overrides) -> FeatureFlagService:
        service = FeatureFlagService(get_feature_flags(**flag_overrides))
        app.dependency_overrides[get_feature_service] = lambda: service
        return service

    return _override


# ============================================================================
# Data Fixtures
# ============================================================================

RECIPE_PAGE = """
<html>
  <head><title>Lemon Chicken</title><script>var tracking = 1;</script></head>
  <body>
    <h1>Lemon Chicken</h1>
    <ul>
      <li itemprop="recipeIngredient">2 tbsp olive oil</li>
      <li itemprop="recipeIngredient">4 chicken thighs</li>
      <li itemprop="recipeIngredient">1 lemon</li>
    </ul>
    <ol>
      <li itemprop="recipeInstructions">Heat the oil in a large skillet.</li>
      <li itemprop="recipeInstructions">Brown the chicken on both sides.</li>
      <li itemprop="recipeInstructions">Squeeze the lemon over and simmer for 20 minutes.</li>
    </ol>
  </body>
</html>
"""


@pytest.fixture
def recipe_page() -> str:
    return RECIPE_PAGE


@pytest.fixture
def parsed_recipes() -> List[ParsedRecipe]:
    return [
        ParsedRecipe(
            title="Lemon Chicken",
            source="https://example.com/lemon-chicken",
            ingredients=["2 tbsp olive oil", "4 chicken thighs", "1 lemon"],
            instructions=["Heat the oil.", "Brown the chicken."],
            raw_content="Lemon Chicken ...",
        ),
        ParsedRecipe(
            title="Garlic Rice",
            source="manual input",
            ingredients=["1 cup rice", "2 tbsp olive oil", "3 cloves garlic"],
            instructions=["Cook the rice."],
            raw_content="Garlic Rice ...",
        ),
    ]
