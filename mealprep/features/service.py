"""
Feature flag service for checking feature states.

The service is injected into route handlers as a FastAPI dependency, and is
also read once at start-up to decide how the engine components are wired.
"""

from typing import Dict, Optional
from fastapi import Depends, HTTPException, status

from mealprep.features.flags import Feature, FeatureFlags, feature_flags


class FeatureFlagService:
    """
    Service for evaluating feature flags.

    Attributes:
        flags: The FeatureFlags configuration instance
    """

    def __init__(self, flags: Optional[FeatureFlags] = None):
        self.flags = flags or feature_flags

    def is_enabled(self, feature: Feature) -> bool:
        """
        Check if a feature is enabled.

        Example:
            if feature_service.is_enabled(Feature.GUIDE_PERSISTENCE):
                saver = GuideSaver(settings.saved_guides_dir)
        """
        return self.flags.get_flag(feature)

    def require_feature(self, feature: Feature) -> None:
        """
        Require a feature to be enabled, raising an exception if not.

        Raises:
            HTTPException: 503 Service Unavailable if feature is disabled
        """
        if not self.is_enabled(feature):
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail={
                    "error_code": "FEATURE_DISABLED",
                    "message": f"Feature '{feature.value}' is currently disabled",
                    "feature": feature.value,
                },
            )

    def get_all_flags(self) -> Dict[str, bool]:
        return self.flags.get_all_flags()

    def get_enabled_features(self) -> list[str]:
        return [name for name, enabled in self.get_all_flags().items() if enabled]


# Global service instance
_feature_service: Optional[FeatureFlagService] = None


def get_feature_service() -> FeatureFlagService:
    """
    Get or create the global feature flag service instance.

    Used as a FastAPI dependency; tests override it through
    app.dependency_overrides.
    """
    global _feature_service
    if _feature_service is None:
        _feature_service = FeatureFlagService()
    return _feature_service


def require_feature(feature: Feature):
    """
    FastAPI dependency factory that requires a feature to be enabled.

    Usage:
        @router.get("")
        async def list_guides(
            _: None = Depends(require_feature(Feature.SAVED_GUIDES_BROWSER)),
        ):
            ...
    """

    def check_feature(
        feature_service: FeatureFlagService = Depends(get_feature_service),
    ) -> None:
        feature_service.require_feature(feature)

    return check_feature
