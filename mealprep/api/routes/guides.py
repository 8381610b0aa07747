"""
Saved guide routes: browse guides written by previous combine requests.
"""
import asyncio

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from mealprep.api.dependencies import get_guide_saver
from mealprep.features import Feature, require_feature
from mealprep.models.schemas import SavedGuideListResponse
from mealprep.services.guide_service import GuideSaver

router = APIRouter(
    prefix="/api/guides",
    tags=["guides"],
    dependencies=[Depends(require_feature(Feature.SAVED_GUIDES_BROWSER))],
)


@router.get("", response_model=SavedGuideListResponse)
async def list_guides(saver: GuideSaver = Depends(get_guide_saver)):
    """List saved guides, newest first."""
    guides = await asyncio.to_thread(saver.list_guides)
    return SavedGuideListResponse(guides=guides, total=len(guides))


@router.get("/{filename}", response_class=PlainTextResponse)
async def read_guide(filename: str, saver: GuideSaver = Depends(get_guide_saver)):
    """Return the text of one saved guide."""
    return await asyncio.to_thread(saver.read_guide, filename)
