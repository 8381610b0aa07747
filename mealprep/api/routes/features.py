"""
Feature flags API routes.

Lets clients show or hide optional UI based on server configuration.
"""
from typing import Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from mealprep.features import FeatureFlagService, get_feature_service

router = APIRouter(prefix="/api/features", tags=["features"])


class FeatureFlagsResponse(BaseModel):
    """Current state of every feature flag."""

    flags: Dict[str, bool]

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "flags": {
                        "llm_ingredient_consolidation": False,
                        "llm_recipe_enrichment": True,
                        "guide_persistence": True,
                        "saved_guides_browser": True,
                    }
                }
            ]
        }
    }


@router.get("", response_model=FeatureFlagsResponse)
async def get_feature_flags(
    feature_service: FeatureFlagService = Depends(get_feature_service),
):
    """Get current state of all feature flags."""
    return FeatureFlagsResponse(flags=feature_service.get_all_flags())
