"""
Ingredient consolidation for the combined shopping list.

Takes every ingredient line from every recipe, deduplicates identical lines
(remembering which recipes use them) and orders the list so similar items
sit next to each other. Two orderings are available:

1. Keyword priority - deterministic sort on a fixed keyword table
2. Generative reorganization - the LLM regroups lines by base ingredient
   (only when the llm_ingredient_consolidation flag is enabled)

The generative ordering is used only when it produces a usable list;
otherwise the keyword ordering is returned. Consolidation never raises.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence, Set

from mealprep.clients.openai_client import OpenAIClient
from mealprep.engine.enrichment import EnrichmentResult
from mealprep.errors import MealPrepError
from mealprep.models.schemas import ConsolidatedIngredient
from mealprep.utils.text import matching_key

logger = logging.getLogger(__name__)


# Keywords in precedence order; an ingredient takes the rank of the first
# keyword found anywhere in its text (case-insensitive).
KEYWORD_PRIORITIES: List[str] = [
    "oil", "butter", "garlic", "onion", "salt", "pepper", "sugar", "flour",
    "egg", "milk", "cream", "cheese", "tomato", "chicken", "beef", "pasta",
    "rice", "beans", "lemon", "vinegar", "broth", "potato", "carrot",
    "celery", "spinach", "mushroom", "bacon", "sausage", "fish", "shrimp",
    "pork",
]

# Rank for ingredients matching no keyword
DEFAULT_PRIORITY = len(KEYWORD_PRIORITIES)

UNKNOWN_RECIPE = "Unknown Recipe"


def compute_keyword_priority(text: str) -> int:
    """
    Rank an ingredient line by the keyword table.

    Examples:
        >>> compute_keyword_priority("2 tbsp Olive Oil")
        0
        >>> compute_keyword_priority("1 bunch kale")
        31
    """
    lower = text.lower()
    for priority, keyword in enumerate(KEYWORD_PRIORITIES):
        if keyword in lower:
            return priority
    return DEFAULT_PRIORITY


class RecipeWithIngredients(Protocol):
    title: Optional[str]
    ingredients: List[str]


@dataclass
class IngredientRecord:
    """One distinct ingredient line and the recipes that contribute it."""

    ingredient: str
    first_appearance_index: int
    priority: int = DEFAULT_PRIORITY
    recipes: List[str] = field(default_factory=list)

    def add_recipe(self, title: str) -> None:
        if title not in self.recipes:
            self.recipes.append(title)

    def to_consolidated(self) -> ConsolidatedIngredient:
        return ConsolidatedIngredient(ingredient=self.ingredient, recipes=list(self.recipes))


def build_records(recipes: Sequence[RecipeWithIngredients]) -> List[IngredientRecord]:
    """
    Flatten and deduplicate ingredient lines across recipes.

    Lines are compared by exact text. The first occurrence fixes the
    record's first_appearance_index; later occurrences only add their recipe
    title. Recipes without a title are labelled "Recipe <n>".
    """
    records: Dict[str, IngredientRecord] = {}
    for index, recipe in enumerate(recipes):
        title = recipe.title or f"Recipe {index + 1}"
        for ingredient in recipe.ingredients or []:
            record = records.get(ingredient)
            if record is None:
                record = IngredientRecord(
                    ingredient=ingredient,
                    first_appearance_index=len(records),
                    priority=compute_keyword_priority(ingredient),
                )
                records[ingredient] = record
            record.add_recipe(title)
    return list(records.values())


def sort_by_priority(records: Sequence[IngredientRecord]) -> List[ConsolidatedIngredient]:
    """Deterministic ordering: keyword priority, then first appearance."""
    ordered = sorted(records, key=lambda r: (r.priority, r.first_appearance_index))
    return [record.to_consolidated() for record in ordered]


# System prompt for the reorganization call
SYSTEM_PROMPT = """You are a helpful cooking assistant that organizes ingredient lists for meal prep.

Your task is to take a list of ingredients and organize them by food type.

IMPORTANT RULES:
1. Keep ALL ingredients - do not remove or merge any items
2. Group similar food items together (put them next to each other)
3. Similar food items are those that refer to the same base ingredient (e.g., "salt" and "salt, to taste" are similar)
   - Treat all salt variants as similar (e.g., "salt", "sea salt", "kosher salt", "salt, to taste")
   - Treat garlic variants as similar (e.g., "3 garlic cloves", "minced garlic", "garlic powder")
   - Treat onion variants as similar (e.g., "onion", "1 yellow onion", "onion powder")
   - Treat butter variants as similar (e.g., "butter", "unsalted butter", "melted butter")
   - Treat oil variants as similar (e.g., "olive oil", "vegetable oil", "cooking spray")
4. Ignore leading numbers, quantities, or units when grouping or ordering; focus ONLY on the core ingredient words
5. Maintain the exact text of each ingredient and quantity as provided - never add, remove or alter a line
6. Return one ingredient per line with no bullets, numbering, explanations or additional text

Example:
Input:
- 2 tablespoons olive oil
- 1 tbsp butter
- 3 cloves garlic
- 1 teaspoon kosher salt
- 1 yellow onion
- garlic powder
- onion powder

Output:
2 tablespoons olive oil
1 tbsp butter
3 cloves garlic
garlic powder
1 teaspoon kosher salt
1 yellow onion
onion powder"""


def _build_user_prompt(records: Sequence[IngredientRecord]) -> str:
    ingredients_list = "\n".join(f"- {record.ingredient}" for record in records)
    return f"""Please organize these ingredients.
Focus only on grouping similar ingredients together so like items appear consecutively.
Ignore leading numbers or measurements when determining similarity; use the core ingredient words.

{ingredients_list}

Return the organized list with similar ingredients grouped together."""


def match_lines(
    lines: Sequence[str],
    records: Sequence[IngredientRecord],
) -> List[ConsolidatedIngredient]:
    """
    Map reorganized lines back to ingredient records.

    Each line matches by exact text first, then case- and
    whitespace-insensitively. Unmatched lines are kept and attributed to
    "Unknown Recipe".

    Every record appears exactly once: repeated lines are dropped, and
    records the model left out are appended in keyword priority order.
    """
    exact = {record.ingredient: record for record in records}
    normalized: Dict[str, IngredientRecord] = {}
    for record in records:
        normalized.setdefault(matching_key(record.ingredient), record)

    consolidated = []
    emitted: Set[str] = set()
    seen_orphans: Set[str] = set()
    orphans = 0
    repeats = 0
    for line in lines:
        record = exact.get(line) or normalized.get(matching_key(line))
        if record is not None:
            if record.ingredient in emitted:
                repeats += 1
                continue
            emitted.add(record.ingredient)
            consolidated.append(record.to_consolidated())
        elif line not in seen_orphans:
            seen_orphans.add(line)
            orphans += 1
            consolidated.append(ConsolidatedIngredient(ingredient=line, recipes=[UNKNOWN_RECIPE]))
        else:
            repeats += 1

    missing = [record for record in records if record.ingredient not in emitted]
    if missing:
        logger.warning(f"Reorganized list left out {len(missing)} ingredients; appending them")
        consolidated.extend(sort_by_priority(missing))
    if repeats:
        logger.warning(f"Dropped {repeats} repeated lines from reorganized ingredients")
    if orphans:
        logger.warning(f"{orphans} reorganized ingredient lines did not match any recipe")
    return consolidated


class IngredientConsolidator:
    """
    Builds the deduplicated, similarity-ordered shopping list.

    Example:
        >>> consolidator = IngredientConsolidator(client, use_llm=False)
        >>> await consolidator.consolidate(recipes)
        [ConsolidatedIngredient(ingredient='2 tbsp olive oil', recipes=['A']), ...]
    """

    def __init__(
        self,
        client: Optional[OpenAIClient] = None,
        use_llm: bool = False,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ):
        self._client = client
        self._use_llm = use_llm
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def consolidate(
        self,
        recipes: Sequence[RecipeWithIngredients],
    ) -> List[ConsolidatedIngredient]:
        """
        Consolidate ingredients across recipes.

        Args:
            recipes: Objects with title and ingredients (ParsedRecipe,
                ConsolidationRecipe, ...).

        Returns:
            Consolidated ingredients, each with its contributing recipe titles.
        """
        records = build_records(recipes)
        if not records:
            return []

        result = await self.reorganize(records)
        if result.ok:
            return result.data
        if self._use_llm:
            logger.info(f"Using keyword ordering for ingredients ({result.reason})")
        return sort_by_priority(records)

    async def reorganize(
        self,
        records: Sequence[IngredientRecord],
    ) -> EnrichmentResult[List[ConsolidatedIngredient]]:
        """Ask the LLM to regroup ingredient lines; never raises."""
        if not self._use_llm:
            return EnrichmentResult.skipped("generative consolidation disabled")
        if self._client is None or not self._client.configured:
            return EnrichmentResult.skipped("generative service not configured")

        try:
            response = await self._client.complete(
                system_prompt=SYSTEM_PROMPT,
                user_prompt=_build_user_prompt(records),
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except MealPrepError as e:
            logger.warning(f"Error consolidating ingredients with OpenAI: {e.message}")
            return EnrichmentResult.failed(e.message)

        lines = [line.strip() for line in response.splitlines() if line.strip()]
        if not lines:
            return EnrichmentResult.failed("empty reorganization response")
        return EnrichmentResult.applied(match_lines(lines, records))
