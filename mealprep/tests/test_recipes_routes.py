"""
Tests for the recipe API routes.

Tests cover:
- Streaming combine: SSE framing, event order, saved guide file
- Non-streaming combine (?stream=false)
- Ingredient consolidation endpoint, keyword and generative ordering
"""
import json
from typing import List

import pytest

from mealprep.api.dependencies import get_components
from mealprep.main import app

RECIPE_URL = "https://recipes.test/lemon-chicken"

GUIDE_FRAGMENTS = ["1. Heat the oven to 200C.\n", "2. Brown the chicken.\n"]


def parse_sse(body: str) -> List[dict]:
    """Decode every `data:` frame of an event-stream body."""
    events = []
    for frame in body.split("\n\n"):
        if frame.startswith("data: "):
            events.append(json.loads(frame[len("data: "):]))
    return events


@pytest.fixture
def url_payload(html_pages, recipe_page):
    html_pages[RECIPE_URL] = (200, recipe_page)
    return {
        "recipes": [
            {"kind": "url", "content": RECIPE_URL},
            {"kind": "text", "content": "Toast two slices of bread."},
        ]
    }


class TestCombineStreaming:
    """Tests for POST /api/recipes/combine (event stream)."""

    def test_streams_events_in_order(self, client, fake_api, url_payload, guides_dir):
        fake_api.queue(GUIDE_FRAGMENTS)

        response = client.post("/api/recipes/combine", json=url_payload)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"

        events = parse_sse(response.text)
        assert [e["type"] for e in events] == ["metadata", "chunk", "chunk", "done"]
        assert "".join(e["chunk"] for e in events[1:3]) == "".join(GUIDE_FRAGMENTS)

        saved = events[-1]["savedFilename"]
        assert saved.startswith("meal-prep-guide-")
        assert (guides_dir / saved).is_file()

    def test_metadata_lists_parsed_recipes(self, client, fake_api, url_payload):
        fake_api.queue(GUIDE_FRAGMENTS)

        response = client.post("/api/recipes/combine", json=url_payload)

        metadata = parse_sse(response.text)[0]
        assert metadata["recipes"][0] == {
            "title": "Lemon Chicken",
            "source": RECIPE_URL,
            "ingredients": ["2 tbsp olive oil", "4 chicken thighs", "1 lemon"],
        }
        assert metadata["recipes"][1]["title"] == "Manual Recipe"
        assert metadata["recipes"][1]["source"] == "manual input"

    def test_legacy_type_field_accepted(self, client, fake_api):
        fake_api.queue(GUIDE_FRAGMENTS)

        response = client.post(
            "/api/recipes/combine",
            json={"recipes": [{"type": "text", "content": "Boil an egg."}]},
        )

        assert response.status_code == 200
        assert parse_sse(response.text)[-1]["type"] == "done"

    def test_generation_failure_ends_with_error_event(self, client, fake_api, url_payload, guides_dir):
        fake_api.queue(["1. Heat the oven.", RuntimeError("stream reset")])

        response = client.post("/api/recipes/combine", json=url_payload)

        assert response.status_code == 200
        events = parse_sse(response.text)
        assert [e["type"] for e in events] == ["metadata", "chunk", "error"]
        assert "stream reset" in events[-1]["error"]
        assert not guides_dir.exists()

    def test_persistence_disabled_omits_filename(
        self, client, fake_api, url_payload, make_components, guides_dir
    ):
        components = make_components(feature_guide_persistence=False)
        app.dependency_overrides[get_components] = lambda: components
        fake_api.queue(GUIDE_FRAGMENTS)

        response = client.post("/api/recipes/combine", json=url_payload)

        done = parse_sse(response.text)[-1]
        assert done == {"type": "done"}
        assert not guides_dir.exists()


class TestCombineNonStreaming:
    """Tests for POST /api/recipes/combine?stream=false."""

    def test_returns_whole_guide(self, client, fake_api, url_payload, guides_dir):
        fake_api.queue("1. Cook it all at once.")

        response = client.post("/api/recipes/combine?stream=false", json=url_payload)

        assert response.status_code == 200
        data = response.json()
        assert data["mealPrepGuide"] == "1. Cook it all at once."
        assert [r["title"] for r in data["recipes"]] == ["Lemon Chicken", "Manual Recipe"]
        assert (guides_dir / data["savedFilename"]).is_file()

    def test_generation_failure_is_json_error(self, client, fake_api, url_payload):
        fake_api.queue(RuntimeError("upstream unavailable"))

        response = client.post("/api/recipes/combine?stream=false", json=url_payload)

        assert response.status_code == 502
        data = response.json()
        assert data["error_code"] == "GENERATIVE_SERVICE_FAILED"
        assert "upstream unavailable" in data["error"]


class TestSessionConsolidation:
    """Tests for GET /api/recipes/sessions/{session_id}/consolidation."""

    EXPECTED = [
        {"ingredient": "2 tbsp olive oil", "recipes": ["Lemon Chicken"]},
        {"ingredient": "4 chicken thighs", "recipes": ["Lemon Chicken"]},
        {"ingredient": "1 lemon", "recipes": ["Lemon Chicken"]},
    ]

    def test_streamed_session_shopping_list(self, client, fake_api, url_payload):
        fake_api.queue(GUIDE_FRAGMENTS)

        events = parse_sse(client.post("/api/recipes/combine", json=url_payload).text)
        session_id = events[0]["sessionId"]
        response = client.get(f"/api/recipes/sessions/{session_id}/consolidation")

        assert response.status_code == 200
        assert response.json() == {"consolidatedIngredients": self.EXPECTED}
        assert len(fake_api.calls) == 1

    def test_non_streamed_session_shopping_list(self, client, fake_api, url_payload):
        fake_api.queue("1. Cook it all at once.")

        data = client.post("/api/recipes/combine?stream=false", json=url_payload).json()
        response = client.get(f"/api/recipes/sessions/{data['sessionId']}/consolidation")

        assert response.json()["consolidatedIngredients"] == self.EXPECTED

    def test_result_is_handed_out_once(self, client, fake_api, url_payload):
        fake_api.queue(GUIDE_FRAGMENTS)

        events = parse_sse(client.post("/api/recipes/combine", json=url_payload).text)
        url = f"/api/recipes/sessions/{events[0]['sessionId']}/consolidation"
        client.get(url)
        response = client.get(url)

        assert response.status_code == 404
        assert response.json()["error_code"] == "CONSOLIDATION_NOT_FOUND"

    def test_unknown_session_is_404(self, client):
        response = client.get("/api/recipes/sessions/unknown/consolidation")

        assert response.status_code == 404


class TestConsolidateIngredients:
    """Tests for POST /api/recipes/consolidate-ingredients."""

    PAYLOAD = {
        "recipes": [
            {"title": "Pasta", "ingredients": ["3 cloves garlic", "2 tbsp olive oil", "salt"]},
            {"title": "Salad", "ingredients": ["2 tbsp olive oil", "1 head lettuce"]},
        ]
    }

    def test_keyword_ordering(self, client):
        response = client.post("/api/recipes/consolidate-ingredients", json=self.PAYLOAD)

        assert response.status_code == 200
        items = response.json()["consolidatedIngredients"]
        assert items == [
            {"ingredient": "2 tbsp olive oil", "recipes": ["Pasta", "Salad"]},
            {"ingredient": "3 cloves garlic", "recipes": ["Pasta"]},
            {"ingredient": "salt", "recipes": ["Pasta"]},
            {"ingredient": "1 head lettuce", "recipes": ["Salad"]},
        ]

    def test_generative_ordering_when_enabled(self, client, fake_api, make_components):
        components = make_components(feature_llm_ingredient_consolidation=True)
        app.dependency_overrides[get_components] = lambda: components
        fake_api.queue("salt\n3 cloves garlic\n2 tbsp olive oil\n1 head lettuce")

        response = client.post("/api/recipes/consolidate-ingredients", json=self.PAYLOAD)

        items = response.json()["consolidatedIngredients"]
        assert [i["ingredient"] for i in items] == [
            "salt", "3 cloves garlic", "2 tbsp olive oil", "1 head lettuce",
        ]
        assert items[2]["recipes"] == ["Pasta", "Salad"]

    def test_empty_recipes_rejected(self, client):
        response = client.post("/api/recipes/consolidate-ingredients", json={"recipes": []})

        assert response.status_code == 400
        assert response.json()["error"] == "Please provide at least one recipe with ingredients"

    def test_recipes_without_ingredients_yield_empty_list(self, client):
        response = client.post(
            "/api/recipes/consolidate-ingredients",
            json={"recipes": [{"title": "Water"}]},
        )

        assert response.status_code == 200
        assert response.json() == {"consolidatedIngredients": []}
