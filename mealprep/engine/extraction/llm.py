"""
LLM-powered recipe extraction using OpenAI structured JSON output.

Used in two places:
- Free-text recipes, which have no markup to scrape
- Recipe pages where the HTML heuristics found no ingredients or no steps

Extraction never raises. Every call returns an EnrichmentResult so callers
can fall back to what they already have.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from mealprep.clients.openai_client import OpenAIClient
from mealprep.engine.enrichment import EnrichmentResult
from mealprep.engine.extraction.models import ExtractedRecipe
from mealprep.errors import EnrichmentError, MealPrepError

logger = logging.getLogger(__name__)


_OUTPUT_RULES = """IMPORTANT RULES:
1. {title_rule}
2. Extract ALL ingredients mentioned in the text, one per line
3. Extract ALL instruction steps, one per line
4. Maintain the exact wording from the original text
5. Return your response as a JSON object with this exact structure:
{{
  "title": "Recipe Title",
  "ingredients": ["ingredient 1", "ingredient 2", ...],
  "instructions": ["step 1", "step 2", ...]
}}
6. If you cannot find ingredients or instructions, use empty arrays []
7. Do NOT include any text outside the JSON object"""

# System prompt for pasted text
TEXT_SYSTEM_PROMPT = """You are a helpful cooking assistant that extracts structured recipe information from unstructured text.

Your task is to parse recipe text and extract:
1. Recipe title (if mentioned)
2. List of ingredients
3. List of instruction steps

""" + _OUTPUT_RULES.format(
    title_rule='Extract the recipe title if it\'s clearly stated, otherwise use "Manual Recipe"'
)

# System prompt for scraped page text
PAGE_SYSTEM_PROMPT = """You are a helpful cooking assistant that extracts structured recipe information from webpage text.

Your task is to parse recipe text and extract:
1. Recipe title (if not already provided)
2. List of ingredients
3. List of instruction steps

""" + _OUTPUT_RULES.format(title_rule="Extract the recipe title if it's clearly stated")


def _build_text_prompt(text: str) -> str:
    return f"""Extract the recipe information from this text:

{text}"""


def _build_page_prompt(page_text: str, title: str) -> str:
    return f"""Extract the recipe information from this webpage text. The title is: "{title}"

{page_text}"""


class LLMRecipeExtractor:
    """
    Generative extractor returning {title, ingredients, instructions}.

    The response is validated with ExtractedRecipe: unknown keys are ignored
    and non-string or blank list entries are dropped.
    """

    def __init__(
        self,
        client: OpenAIClient,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ):
        self._client = client
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def extract_from_text(self, text: str) -> EnrichmentResult[ExtractedRecipe]:
        """Extract a recipe from pasted text (already truncated by the caller)."""
        return await self._extract(
            stage="text",
            system_prompt=TEXT_SYSTEM_PROMPT,
            user_prompt=_build_text_prompt(text),
        )

    async def extract_from_page(
        self,
        page_text: str,
        title: str,
    ) -> EnrichmentResult[ExtractedRecipe]:
        """Extract a recipe from scraped page text, passing the scraped title as a hint."""
        return await self._extract(
            stage="page",
            system_prompt=PAGE_SYSTEM_PROMPT,
            user_prompt=_build_page_prompt(page_text, title),
        )

    async def _extract(
        self,
        stage: str,
        system_prompt: str,
        user_prompt: str,
    ) -> EnrichmentResult[ExtractedRecipe]:
        if not self._client.configured:
            return EnrichmentResult.skipped("generative service not configured")

        try:
            data = await self._client.parse_json(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
            extracted = self._validate(stage, data)
        except MealPrepError as e:
            logger.warning(f"Recipe extraction ({stage}) failed: {e.message}")
            return EnrichmentResult.failed(e.message)

        return EnrichmentResult.applied(extracted)

    @staticmethod
    def _validate(stage: str, data: dict) -> ExtractedRecipe:
        try:
            extracted = ExtractedRecipe.model_validate(data)
        except ValidationError as e:
            raise EnrichmentError(stage, f"invalid extraction payload: {e}") from e
        return extracted


def describe_result(result: EnrichmentResult, source: Optional[str] = None) -> str:
    """One-line log description of an extraction outcome."""
    where = f" for {source}" if source else ""
    if result.ok:
        data = result.data
        return (
            f"Extraction applied{where}: "
            f"{len(data.ingredients)} ingredients, {len(data.instructions)} steps"
        )
    return f"Extraction {result.status.value}{where}: {result.reason}"
