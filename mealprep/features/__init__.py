"""
Feature flags module for Mise-En-Plaice.

Lets optional behaviour be enabled or disabled without code changes.
"""

from mealprep.features.flags import Feature, FeatureFlags, get_feature_flags
from mealprep.features.service import (
    FeatureFlagService,
    get_feature_service,
    require_feature,
)

__all__ = [
    "Feature",
    "FeatureFlags",
    "get_feature_flags",
    "FeatureFlagService",
    "get_feature_service",
    "require_feature",
]
