"""
Source extractor: turns one RecipeSource into a ParsedRecipe.

URL sources are fetched and scraped with the heuristic strategy chains, and
topped up by generative extraction when ingredients or steps are missing.
Text sources go straight to generative extraction, degrading to a minimal
record when the text is too short or extraction fails.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

import httpx
from bs4 import BeautifulSoup

from mealprep.engine.extraction.html import (
    INGREDIENT_STRATEGIES,
    INSTRUCTION_STRATEGIES,
    extract_title,
    page_text,
)
from mealprep.engine.extraction.llm import LLMRecipeExtractor, describe_result
from mealprep.engine.extraction.models import (
    MAX_PAGE_TEXT_FOR_LLM,
    MAX_RAW_CONTENT_CHARS,
    MAX_RECIPE_ITEMS,
    MAX_TEXT_FOR_LLM,
    MIN_PAGE_TEXT_FOR_LLM,
    MIN_TEXT_FOR_LLM,
)
from mealprep.engine.extraction.protocol import ExtractionStrategy, run_strategy_chain
from mealprep.errors import InvalidInputError, SourceUnreachableError
from mealprep.models.schemas import (
    DEFAULT_TEXT_TITLE,
    MANUAL_SOURCE,
    ParsedRecipe,
    RecipeKind,
    RecipeSource,
)

logger = logging.getLogger(__name__)


def manual_recipe(text: str) -> ParsedRecipe:
    """Minimal record for pasted text that was not (or could not be) parsed."""
    return ParsedRecipe(
        title=DEFAULT_TEXT_TITLE,
        source=MANUAL_SOURCE,
        raw_content=text,
    )


class SourceExtractor:
    """
    Extracts normalized recipes from URLs and pasted text.

    Only an unreachable URL is fatal. Failed generative enrichment never is:
    the extractor keeps whatever it already scraped.
    """

    def __init__(
        self,
        llm_extractor: LLMRecipeExtractor,
        *,
        enrich_pages: bool = True,
        fetch_timeout: float = 15.0,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        ingredient_strategies: Sequence[ExtractionStrategy] = INGREDIENT_STRATEGIES,
        instruction_strategies: Sequence[ExtractionStrategy] = INSTRUCTION_STRATEGIES,
    ):
        """
        Args:
            llm_extractor: Generative extractor used for text and page fallback.
            enrich_pages: Whether URL recipes may use the generative fallback.
            fetch_timeout: Timeout in seconds for fetching recipe pages.
            user_agent: User-Agent header sent with page requests.
            transport: Optional httpx transport (tests inject a MockTransport).
            ingredient_strategies: Ordered ingredient scraping strategies.
            instruction_strategies: Ordered instruction scraping strategies.
        """
        self._llm = llm_extractor
        self._enrich_pages = enrich_pages
        self._fetch_timeout = fetch_timeout
        self._headers = {"User-Agent": user_agent} if user_agent else {}
        self._transport = transport
        self._ingredient_strategies = tuple(ingredient_strategies)
        self._instruction_strategies = tuple(instruction_strategies)

    async def extract(self, source: RecipeSource) -> ParsedRecipe:
        """
        Extract one recipe.

        Raises:
            InvalidInputError: Empty URL or non-string/empty text.
            SourceUnreachableError: The URL could not be fetched.
        """
        if source.kind == RecipeKind.URL:
            return await self.extract_url(source.content)
        return await self.extract_text(source.content)

    async def extract_all(self, sources: Sequence[RecipeSource]) -> List[ParsedRecipe]:
        """
        Extract every source concurrently, all-or-nothing.

        The first failure cancels the remaining extractions and is re-raised.
        Results keep the order of the input sources.
        """
        tasks = [asyncio.ensure_future(self.extract(source)) for source in sources]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

    async def extract_url(self, url: str) -> ParsedRecipe:
        if not isinstance(url, str) or not url.strip():
            raise InvalidInputError("Recipe URL must be a non-empty string")
        url = url.strip()

        html = await self._fetch(url)
        soup = BeautifulSoup(html, "html.parser")

        title = extract_title(soup)
        ingredients, ingredient_strategy = run_strategy_chain(self._ingredient_strategies, soup)
        instructions, instruction_strategy = run_strategy_chain(
            self._instruction_strategies, soup
        )
        body_text = page_text(soup)
        logger.debug(
            f"Scraped {url}: {len(ingredients)} ingredients via {ingredient_strategy}, "
            f"{len(instructions)} steps via {instruction_strategy}"
        )

        if (not ingredients or not instructions) and self._enrich_pages:
            snippet = body_text[:MAX_PAGE_TEXT_FOR_LLM]
            if len(snippet) > MIN_PAGE_TEXT_FOR_LLM:
                result = await self._llm.extract_from_page(snippet, title)
                logger.info(describe_result(result, url))
                if result.ok:
                    extracted = result.data
                    # Generated lists replace scraped ones only when non-empty
                    if extracted.ingredients:
                        ingredients = extracted.ingredients
                    if extracted.instructions:
                        instructions = extracted.instructions
                    if extracted.title:
                        title = extracted.title

        return ParsedRecipe(
            title=title,
            source=url,
            ingredients=ingredients[:MAX_RECIPE_ITEMS],
            instructions=instructions[:MAX_RECIPE_ITEMS],
            raw_content=body_text[:MAX_RAW_CONTENT_CHARS],
        )

    async def extract_text(self, text: str) -> ParsedRecipe:
        if not isinstance(text, str) or not text:
            raise InvalidInputError("Invalid recipe text provided")

        # Short snippets are not worth a generative call
        if len(text.strip()) < MIN_TEXT_FOR_LLM:
            return manual_recipe(text)

        result = await self._llm.extract_from_text(text[:MAX_TEXT_FOR_LLM])
        logger.info(describe_result(result, MANUAL_SOURCE))
        if not result.ok:
            return manual_recipe(text)

        extracted = result.data
        return ParsedRecipe(
            title=extracted.title or DEFAULT_TEXT_TITLE,
            source=MANUAL_SOURCE,
            ingredients=extracted.ingredients[:MAX_RECIPE_ITEMS],
            instructions=extracted.instructions[:MAX_RECIPE_ITEMS],
            raw_content=text,
        )

    async def _fetch(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=self._fetch_timeout,
                headers=self._headers,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.text
        except httpx.HTTPStatusError as e:
            reason = f"Request failed with status code {e.response.status_code}"
            logger.error(f"Error fetching recipe from {url}: {reason}")
            raise SourceUnreachableError(url, reason) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            reason = str(e) or type(e).__name__
            logger.error(f"Error fetching recipe from {url}: {reason}")
            raise SourceUnreachableError(url, reason) from e
