"""
Tests for error handling and error response format.

Tests cover:
- Custom exception classes and error codes
- Structured error responses from API endpoints
- Request validation errors rendered in the same shape
"""
import pytest

from mealprep.errors import (
    ConsolidationNotFoundError,
    EnrichmentError,
    ErrorCode,
    ErrorResponse,
    GenerativeNotConfiguredError,
    GenerativeServiceError,
    GuideNotFoundError,
    InvalidInputError,
    MealPrepError,
    PersistenceError,
    SourceUnreachableError,
)


class TestErrorCodeEnum:
    """Tests for ErrorCode enumeration."""

    def test_error_codes_are_strings(self):
        assert isinstance(ErrorCode.SOURCE_UNREACHABLE.value, str)
        assert ErrorCode.SOURCE_UNREACHABLE.value == "SOURCE_UNREACHABLE"

    def test_error_codes_are_unique(self):
        values = [code.value for code in ErrorCode]
        assert len(values) == len(set(values))


class TestExceptionClasses:
    """Tests for the MealPrepError hierarchy."""

    @pytest.mark.parametrize(
        "error, code, status",
        [
            (InvalidInputError("bad"), ErrorCode.VALIDATION_INVALID_INPUT, 400),
            (SourceUnreachableError("https://x.test", "timeout"), ErrorCode.SOURCE_UNREACHABLE, 502),
            (GenerativeServiceError("boom"), ErrorCode.GENERATIVE_SERVICE_FAILED, 502),
            (GenerativeNotConfiguredError(), ErrorCode.GENERATIVE_NOT_CONFIGURED, 503),
            (EnrichmentError("page", "bad json"), ErrorCode.ENRICHMENT_FAILED, 500),
            (PersistenceError("disk full"), ErrorCode.GUIDE_PERSISTENCE_FAILED, 500),
            (GuideNotFoundError("a.txt"), ErrorCode.GUIDE_NOT_FOUND, 404),
            (ConsolidationNotFoundError("abc"), ErrorCode.CONSOLIDATION_NOT_FOUND, 404),
        ],
    )
    def test_codes_and_statuses(self, error, code, status):
        assert isinstance(error, MealPrepError)
        assert error.error_code == code
        assert error.status_code == status

    def test_source_unreachable_message_and_details(self):
        error = SourceUnreachableError("https://x.test/r", "Request failed with status code 500")
        assert error.message == "Failed to parse recipe from URL: Request failed with status code 500"
        assert error.details == {
            "url": "https://x.test/r",
            "reason": "Request failed with status code 500",
        }

    def test_not_configured_is_a_generative_error(self):
        assert isinstance(GenerativeNotConfiguredError(), GenerativeServiceError)

    def test_persistence_error_includes_path(self):
        error = PersistenceError("read-only file system", path="/tmp/guides")
        assert error.message == "Failed to save guide to file: read-only file system"
        assert error.details["path"] == "/tmp/guides"

    def test_to_response_omits_empty_details(self):
        response = GenerativeServiceError("boom").to_response()
        assert isinstance(response, ErrorResponse)
        assert response.model_dump() == {
            "error": "boom",
            "error_code": "GENERATIVE_SERVICE_FAILED",
            "details": None,
        }


class TestApiErrorResponses:
    """Error shape returned by the API."""

    def test_application_error_shape(self, client):
        response = client.post("/api/recipes/combine", json={"recipes": []})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Please provide at least one recipe"
        assert data["error_code"] == "VALIDATION_INVALID_INPUT"

    def test_missing_body_field_is_400(self, client):
        response = client.post("/api/recipes/combine", json={})

        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "VALIDATION_INVALID_INPUT"
        assert data["details"]["errors"][0]["loc"][-1] == "recipes"

    def test_unknown_recipe_kind_is_400(self, client):
        response = client.post(
            "/api/recipes/combine",
            json={"recipes": [{"kind": "video", "content": "https://x.test"}]},
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_INVALID_INPUT"

    def test_unreachable_url_is_502(self, client):
        response = client.post(
            "/api/recipes/combine",
            json={"recipes": [{"kind": "url", "content": "https://missing.test/recipe"}]},
        )

        assert response.status_code == 502
        data = response.json()
        assert data["error_code"] == "SOURCE_UNREACHABLE"
        assert data["error"] == "Failed to parse recipe from URL: Request failed with status code 404"
