"""
Data models and limits for recipe extraction.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Maximum ingredients / instructions kept per recipe
MAX_RECIPE_ITEMS = 50

# Raw content snapshot kept for URL recipes
MAX_RAW_CONTENT_CHARS = 2000

# Page text sent to the generative fallback for URL recipes
MAX_PAGE_TEXT_FOR_LLM = 5000

# Page text must be longer than this before the generative fallback is tried
MIN_PAGE_TEXT_FOR_LLM = 100

# Pasted text sent to the generative extractor
MAX_TEXT_FOR_LLM = 3000

# Trimmed pasted text shorter than this is not sent to the generative extractor
MIN_TEXT_FOR_LLM = 50


def _clean_string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item.strip()]


class ExtractedRecipe(BaseModel):
    """
    Recipe fields returned by generative extraction.

    Keys other than title, ingredients and instructions are ignored, and
    list entries that are not non-blank strings are dropped.
    """

    title: Optional[str] = None
    ingredients: List[str] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("title", mode="before")
    @classmethod
    def _title_must_be_text(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @field_validator("ingredients", "instructions", mode="before")
    @classmethod
    def _drop_blank_entries(cls, value: Any) -> List[str]:
        return _clean_string_list(value)
