"""
Feature flag definitions and configuration.

Feature flags toggle optional behaviour (generative consolidation, guide
persistence, ...) via environment variables without code changes.
"""

from enum import Enum
from typing import Dict

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Feature(str, Enum):
    """
    Enumeration of all feature flags in the application.

    Naming convention: FEATURE_<NAME> in the environment.
    """

    # Generative features
    LLM_INGREDIENT_CONSOLIDATION = "llm_ingredient_consolidation"
    LLM_RECIPE_ENRICHMENT = "llm_recipe_enrichment"

    # Guide features
    GUIDE_PERSISTENCE = "guide_persistence"
    SAVED_GUIDES_BROWSER = "saved_guides_browser"


# Default states for all features (True = enabled by default)
DEFAULT_FEATURE_STATES: Dict[Feature, bool] = {
    # Opt-in: adds a generative call per consolidation
    Feature.LLM_INGREDIENT_CONSOLIDATION: False,
    # Only takes effect when an OpenAI API key is configured
    Feature.LLM_RECIPE_ENRICHMENT: True,
    Feature.GUIDE_PERSISTENCE: True,
    Feature.SAVED_GUIDES_BROWSER: True,
}


class FeatureFlags(BaseSettings):
    """
    Feature flag settings loaded from environment variables.

    Each feature flag can be toggled via an environment variable:
    FEATURE_<FLAG_NAME>=true/false

    Example:
        FEATURE_LLM_INGREDIENT_CONSOLIDATION=true
        FEATURE_GUIDE_PERSISTENCE=false

    USE_OPENAI_INGREDIENT_CONSOLIDATION is still honoured for generative
    consolidation.
    """

    feature_llm_ingredient_consolidation: bool = Field(
        default=DEFAULT_FEATURE_STATES[Feature.LLM_INGREDIENT_CONSOLIDATION],
        validation_alias=AliasChoices(
            "feature_llm_ingredient_consolidation",
            "use_openai_ingredient_consolidation",
        ),
    )
    feature_llm_recipe_enrichment: bool = DEFAULT_FEATURE_STATES[
        Feature.LLM_RECIPE_ENRICHMENT
    ]

    feature_guide_persistence: bool = DEFAULT_FEATURE_STATES[Feature.GUIDE_PERSISTENCE]
    feature_saved_guides_browser: bool = DEFAULT_FEATURE_STATES[
        Feature.SAVED_GUIDES_BROWSER
    ]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore non-feature-flag environment variables
    )

    def get_flag(self, feature: Feature) -> bool:
        """
        Get the current state of a feature flag.

        Args:
            feature: The feature to check

        Returns:
            True if the feature is enabled, False otherwise
        """
        attr_name = f"feature_{feature.value}"
        return getattr(self, attr_name, DEFAULT_FEATURE_STATES.get(feature, False))

    def get_all_flags(self) -> Dict[str, bool]:
        """Map every feature name to its enabled state."""
        return {feature.value: self.get_flag(feature) for feature in Feature}


def get_feature_flags(**overrides) -> FeatureFlags:
    """
    Factory function to create FeatureFlags instance.

    Useful for testing where you need to override specific flags
    without modifying environment variables.

    Example:
        flags = get_feature_flags(feature_guide_persistence=False)
    """
    return FeatureFlags(**overrides)


# Global feature flags instance
feature_flags = get_feature_flags()
