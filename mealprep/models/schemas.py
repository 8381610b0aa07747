"""
Pydantic data models for recipe parsing, guide streaming and consolidation.
"""
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# Marker used as ParsedRecipe.source for free-text recipes
MANUAL_SOURCE = "manual input"

DEFAULT_URL_TITLE = "Untitled Recipe"
DEFAULT_TEXT_TITLE = "Manual Recipe"


class RecipeKind(str, Enum):
    """Kinds of user-submitted recipe sources."""
    URL = "url"
    TEXT = "text"


class RecipeSource(BaseModel):
    """A single user-submitted recipe: a page URL or pasted text."""
    # "type" is accepted for compatibility with older clients
    kind: RecipeKind = Field(validation_alias=AliasChoices("kind", "type"))
    content: str

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "examples": [
                {"kind": "url", "content": "https://www.example.com/recipes/lemon-chicken"},
                {"kind": "text", "content": "Garlic Pasta\n\n200g spaghetti\n3 cloves garlic..."},
            ]
        },
    )


class RecipeMetadata(BaseModel):
    """Recipe subset sent to clients before the guide streams."""
    title: str
    source: str
    ingredients: List[str] = Field(default_factory=list)


class ParsedRecipe(BaseModel):
    """
    Normalized recipe produced by the source extractor.

    ingredients and instructions may be empty but are never missing.
    raw_content keeps a truncated snapshot of the original text so later
    generative stages have something to work with when scraping fails.
    """
    title: str
    source: str
    ingredients: List[str] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    raw_content: str = Field(default="", alias="rawContent")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_manual(self) -> bool:
        return self.source == MANUAL_SOURCE

    def metadata(self) -> RecipeMetadata:
        """Return the client-facing subset (no instructions or raw content)."""
        return RecipeMetadata(
            title=self.title,
            source=self.source,
            ingredients=list(self.ingredients),
        )


class CombineRequest(BaseModel):
    """Request body for combining recipes into a meal prep guide."""
    recipes: List[RecipeSource]


class CombineResponse(BaseModel):
    """Non-streaming combine response."""
    meal_prep_guide: str = Field(alias="mealPrepGuide")
    recipes: List[RecipeMetadata]
    saved_filename: Optional[str] = Field(default=None, alias="savedFilename")
    session_id: str = Field(alias="sessionId")

    model_config = ConfigDict(populate_by_name=True)


class ConsolidationRecipe(BaseModel):
    """Minimal recipe shape accepted by ingredient consolidation."""
    title: Optional[str] = None
    ingredients: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class ConsolidateRequest(BaseModel):
    """Request body for ingredient consolidation."""
    recipes: List[ConsolidationRecipe]


class ConsolidatedIngredient(BaseModel):
    """One shopping-list line and the recipes that use it."""
    ingredient: str
    recipes: List[str]


class ConsolidateResponse(BaseModel):
    """Consolidated shopping list."""
    consolidated_ingredients: List[ConsolidatedIngredient] = Field(
        alias="consolidatedIngredients"
    )

    model_config = ConfigDict(populate_by_name=True)


# Stream events


class StreamEvent(BaseModel):
    """Base class for guide session events."""
    type: str

    def to_sse(self) -> str:
        """Encode as a single Server-Sent Events data frame."""
        return f"data: {self.model_dump_json(by_alias=True, exclude_none=True)}\n\n"

    @property
    def is_terminal(self) -> bool:
        return self.type in ("done", "error")


class MetadataEvent(StreamEvent):
    type: Literal["metadata"] = "metadata"
    # Key for fetching the session's shopping list once the stream ends
    session_id: str = Field(alias="sessionId")
    recipes: List[RecipeMetadata]

    model_config = ConfigDict(populate_by_name=True)


class ChunkEvent(StreamEvent):
    type: Literal["chunk"] = "chunk"
    chunk: str


class DoneEvent(StreamEvent):
    type: Literal["done"] = "done"
    saved_filename: Optional[str] = Field(default=None, alias="savedFilename")

    model_config = ConfigDict(populate_by_name=True)


class ErrorEvent(StreamEvent):
    type: Literal["error"] = "error"
    error: str


# Saved guides


class SavedGuide(BaseModel):
    """Metadata for a guide file on disk."""
    filename: str
    created_at: datetime
    size: int


class SavedGuideListResponse(BaseModel):
    guides: List[SavedGuide]
    total: int
