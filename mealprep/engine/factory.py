"""
Factory for wiring the engine components.

Settings and feature flags decide which optional behaviour is switched on;
the generative client is created once by the caller and shared by every
component that needs it.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from mealprep.clients.openai_client import OpenAIClient
from mealprep.config import Settings
from mealprep.engine.combiner import RecipeCombiner
from mealprep.engine.consolidator import IngredientConsolidator
from mealprep.engine.extraction import LLMRecipeExtractor, SourceExtractor
from mealprep.engine.orchestrator import GuideOrchestrator
from mealprep.engine.session_registry import ConsolidationRegistry
from mealprep.features.flags import Feature, FeatureFlags
from mealprep.services.guide_service import GuideSaver


@dataclass
class Components:
    """Everything a request handler or CLI command needs."""

    client: OpenAIClient
    extractor: SourceExtractor
    combiner: RecipeCombiner
    consolidator: IngredientConsolidator
    saver: GuideSaver
    orchestrator: GuideOrchestrator


def build_components(
    settings: Settings,
    flags: FeatureFlags,
    client: OpenAIClient,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Components:
    """
    Create the engine components.

    Generative consolidation is used only if LLM_INGREDIENT_CONSOLIDATION
    is enabled; the page fallback of URL extraction only if
    LLM_RECIPE_ENRICHMENT is. Both still degrade quietly when no API key is
    configured. Guides are persisted only if GUIDE_PERSISTENCE is enabled,
    but the saver is always built so saved guides stay browsable. Shopping
    lists started by combine sessions are held for
    consolidation_result_ttl_seconds.

    Args:
        settings: Application settings.
        flags: Feature flag states.
        client: Shared generative client.
        transport: Optional httpx transport for page fetches (tests).
    """
    llm_extractor = LLMRecipeExtractor(
        client,
        temperature=settings.openai_extraction_temperature,
        max_tokens=settings.openai_extraction_max_tokens,
    )
    extractor = SourceExtractor(
        llm_extractor,
        enrich_pages=flags.get_flag(Feature.LLM_RECIPE_ENRICHMENT),
        fetch_timeout=settings.fetch_timeout_seconds,
        user_agent=settings.fetch_user_agent,
        transport=transport,
    )
    combiner = RecipeCombiner(
        client,
        temperature=settings.openai_combine_temperature,
        max_tokens=settings.openai_combine_max_tokens,
    )
    consolidator = IngredientConsolidator(
        client,
        use_llm=flags.get_flag(Feature.LLM_INGREDIENT_CONSOLIDATION),
        temperature=settings.openai_extraction_temperature,
        max_tokens=settings.openai_extraction_max_tokens,
    )
    saver = GuideSaver(settings.saved_guides_dir)
    orchestrator = GuideOrchestrator(
        extractor,
        combiner,
        consolidator,
        saver=saver if flags.get_flag(Feature.GUIDE_PERSISTENCE) else None,
        registry=ConsolidationRegistry(ttl_seconds=settings.consolidation_result_ttl_seconds),
    )
    return Components(
        client=client,
        extractor=extractor,
        combiner=combiner,
        consolidator=consolidator,
        saver=saver,
        orchestrator=orchestrator,
    )
