"""
Recipe API routes: combine recipes into a meal prep guide and consolidate
their ingredients into one shopping list.
"""
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from mealprep.api.dependencies import get_consolidator, get_orchestrator, limiter
from mealprep.config import settings
from mealprep.engine.consolidator import IngredientConsolidator
from mealprep.engine.orchestrator import GuideOrchestrator
from mealprep.errors import InvalidInputError
from mealprep.models.schemas import (
    CombineRequest,
    CombineResponse,
    ConsolidateRequest,
    ConsolidateResponse,
    StreamEvent,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recipes", tags=["recipes"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


async def _encode_events(events: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
    async for event in events:
        yield event.to_sse()


@router.post("/combine", response_model=None)
@limiter.limit(settings.rate_limit_combine)
async def combine_recipes(
    request: Request,
    payload: CombineRequest,
    stream: bool = Query(True, description="Stream the guide as Server-Sent Events"),
    orchestrator: GuideOrchestrator = Depends(get_orchestrator),
):
    """
    Combine recipes into a single meal prep guide.

    Every recipe is parsed before anything is sent, so an unreachable URL or
    malformed source is returned as a regular JSON error.

    By default the response is an event stream: one `metadata` event with
    the parsed recipes and the `sessionId`, `chunk` events as the guide is
    generated, then a single `done` (with `savedFilename`) or `error` event.
    With `?stream=false` the whole guide is returned as one JSON object.

    The shopping list built alongside the guide is fetched afterwards from
    `GET /api/recipes/sessions/{sessionId}/consolidation`.
    """
    if not stream:
        session = await orchestrator.combine(payload.recipes)
        response = CombineResponse(
            meal_prep_guide=session.guide_text,
            recipes=[recipe.metadata() for recipe in session.recipes],
            saved_filename=session.saved_filename,
            session_id=session.session_id,
        )
        return JSONResponse(content=response.model_dump(by_alias=True, exclude_none=True))

    session = await orchestrator.open_session(payload.recipes)
    return StreamingResponse(
        _encode_events(orchestrator.stream(session)),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/consolidate-ingredients", response_model=ConsolidateResponse)
@limiter.limit(settings.rate_limit_consolidate)
async def consolidate_ingredients(
    request: Request,
    payload: ConsolidateRequest,
    consolidator: IngredientConsolidator = Depends(get_consolidator),
):
    """
    Consolidate ingredients from several recipes into one grouped list.

    Identical lines are merged and list every recipe that uses them; similar
    items (all the garlic, all the oils, ...) end up next to each other.
    """
    if not payload.recipes:
        raise InvalidInputError("Please provide at least one recipe with ingredients")

    consolidated = await consolidator.consolidate(payload.recipes)
    logger.info(f"Consolidated {len(consolidated)} ingredients from {len(payload.recipes)} recipes")
    return ConsolidateResponse(consolidated_ingredients=consolidated)


@router.get("/sessions/{session_id}/consolidation", response_model=ConsolidateResponse)
async def get_session_consolidation(
    session_id: str,
    orchestrator: GuideOrchestrator = Depends(get_orchestrator),
):
    """
    Fetch the shopping list consolidated during a combine session.

    Waits for consolidation if it is still running. Each result can be
    fetched once and expires if never collected.
    """
    consolidated = await orchestrator.consolidation_result(session_id)
    return ConsolidateResponse(consolidated_ingredients=consolidated)
