"""
Custom exceptions and error codes for the Mise-En-Plaice application.

This module provides:
- Structured error codes for categorized error handling
- Custom exception classes for specific failure scenarios
- Error response schema for consistent API responses
"""
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """
    Application-wide error codes for categorized error handling.

    Format: CATEGORY_SPECIFIC_ERROR
    Categories:
    - VALIDATION_*: Input validation errors
    - SOURCE_*: Recipe source fetching errors
    - GENERATIVE_*: Generative service errors
    - ENRICHMENT_*: Recoverable generative enrichment errors
    - GUIDE_*: Saved guide errors
    - CONSOLIDATION_*: Session shopping list errors
    """

    # Validation errors
    VALIDATION_INVALID_INPUT = "VALIDATION_INVALID_INPUT"

    # Source errors
    SOURCE_UNREACHABLE = "SOURCE_UNREACHABLE"

    # Generative service errors
    GENERATIVE_SERVICE_FAILED = "GENERATIVE_SERVICE_FAILED"
    GENERATIVE_NOT_CONFIGURED = "GENERATIVE_NOT_CONFIGURED"

    # Enrichment errors (always recovered locally)
    ENRICHMENT_FAILED = "ENRICHMENT_FAILED"

    # Guide errors
    GUIDE_PERSISTENCE_FAILED = "GUIDE_PERSISTENCE_FAILED"
    GUIDE_NOT_FOUND = "GUIDE_NOT_FOUND"

    # Consolidation errors
    CONSOLIDATION_NOT_FOUND = "CONSOLIDATION_NOT_FOUND"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Structured error response for API errors."""
    error: str
    error_code: ErrorCode
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(use_enum_values=True)


class MealPrepError(Exception):
    """
    Base exception for all Mise-En-Plaice application errors.

    Provides structured error information for consistent error handling.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to ErrorResponse for API output."""
        return ErrorResponse(
            error=self.message,
            error_code=self.error_code,
            details=self.details if self.details else None,
        )


class InvalidInputError(MealPrepError):
    """Raised when the caller's request is malformed."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_INVALID_INPUT,
            details=details,
            status_code=400,
        )


class SourceUnreachableError(MealPrepError):
    """Raised when a recipe URL cannot be fetched or parsed."""

    def __init__(self, url: str, reason: str):
        super().__init__(
            message=f"Failed to parse recipe from URL: {reason}",
            error_code=ErrorCode.SOURCE_UNREACHABLE,
            details={"url": url, "reason": reason},
            status_code=502,
        )


class GenerativeServiceError(MealPrepError):
    """Raised when the generative service fails after model fallback."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.GENERATIVE_SERVICE_FAILED,
        details: Dict[str, Any] = None,
        status_code: int = 502,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            status_code=status_code,
        )


class GenerativeNotConfiguredError(GenerativeServiceError):
    """Raised when a generative call is attempted without an API key."""

    def __init__(self):
        super().__init__(
            message=(
                "OpenAI API key not configured. "
                "Set the OPENAI_API_KEY environment variable."
            ),
            error_code=ErrorCode.GENERATIVE_NOT_CONFIGURED,
            status_code=503,
        )


class EnrichmentError(MealPrepError):
    """Raised inside optional generative enrichment; callers degrade to the next tier."""

    def __init__(self, stage: str, reason: str):
        super().__init__(
            message=f"{stage} enrichment failed: {reason}",
            error_code=ErrorCode.ENRICHMENT_FAILED,
            details={"stage": stage, "reason": reason},
            status_code=500,
        )


class PersistenceError(MealPrepError):
    """Raised when a guide cannot be written to disk."""

    def __init__(self, reason: str, path: Optional[str] = None):
        details = {"reason": reason}
        if path:
            details["path"] = path
        super().__init__(
            message=f"Failed to save guide to file: {reason}",
            error_code=ErrorCode.GUIDE_PERSISTENCE_FAILED,
            details=details,
            status_code=500,
        )


class GuideNotFoundError(MealPrepError):
    """Raised when a saved guide does not exist."""

    def __init__(self, filename: str):
        super().__init__(
            message=f"Saved guide '{filename}' not found",
            error_code=ErrorCode.GUIDE_NOT_FOUND,
            details={"filename": filename},
            status_code=404,
        )


class ConsolidationNotFoundError(MealPrepError):
    """Raised when a session has no shopping list to hand out (unknown, expired or abandoned)."""

    def __init__(self, session_id: str):
        super().__init__(
            message=f"No shopping list available for session '{session_id}'",
            error_code=ErrorCode.CONSOLIDATION_NOT_FOUND,
            details={"session_id": session_id},
            status_code=404,
        )
