"""
FastAPI dependencies for the engine components and rate limiting.

Components are built once in the application lifespan and stored on
app.state; tests replace them through app.dependency_overrides.
"""
from fastapi import Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from mealprep.config import settings
from mealprep.engine.consolidator import IngredientConsolidator
from mealprep.engine.factory import Components
from mealprep.engine.orchestrator import GuideOrchestrator
from mealprep.services.guide_service import GuideSaver

# Shared rate limiter; disabled in debug mode or when rate_limit_enabled is False
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled and not settings.debug,
)


def get_components(request: Request) -> Components:
    """
    Dependency returning the components built at start-up.

    Usage:
        @router.post("/combine")
        async def combine(components: Components = Depends(get_components)):
            ...
    """
    return request.app.state.components


def get_orchestrator(components: Components = Depends(get_components)) -> GuideOrchestrator:
    return components.orchestrator


def get_consolidator(
    components: Components = Depends(get_components),
) -> IngredientConsolidator:
    return components.consolidator


def get_guide_saver(components: Components = Depends(get_components)) -> GuideSaver:
    return components.saver
