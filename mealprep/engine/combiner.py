"""
Recipe combiner: builds the combination prompt and calls the LLM.

The LLM is asked to merge all recipes into one meal prep guide that groups
similar tasks across recipes, schedules parallel cooking and includes
timing. The guide can be produced in one response or streamed.
"""

import logging
from typing import AsyncIterator, Sequence, Tuple

from mealprep.clients.openai_client import OpenAIClient
from mealprep.models.schemas import ParsedRecipe

logger = logging.getLogger(__name__)

# Raw content appended to each recipe as extra context
MAX_CONTEXT_CHARS = 2000

SYSTEM_PROMPT = """You are an expert meal prep coordinator. Your job is to combine multiple recipes into a single, optimized meal prep guide that allows for efficient simultaneous preparation of all dishes.

Consider the following when creating the guide:
1. Prioritize grouping similar tasks from different recipes together (e.g., all chopping from each recipe, all mixing) above all else.
2. Assume a standard home kitchen setup (one oven, four-burner stove, microwave, basic countertop appliances).
3. Optimize for time efficiency - do things in parallel when possible. While longer dishes cook, prepare the shorter dishes.
4. Consider cooking times and temperatures - can items share the same oven/space?
5. Provide clear, step-by-step instructions that are easy to follow
6. Include timing information whenever possible
7. Note when items can be prepared ahead of time.

Format your response as a clear, numbered step-by-step guide."""


def format_recipe(recipe: ParsedRecipe, index: int) -> str:
    """Render one recipe block for the combination prompt."""
    lines = [f"Recipe {index + 1}: {recipe.title}"]
    if recipe.source:
        lines.append(f"Source: {recipe.source}")
    if recipe.ingredients:
        lines.append("Ingredients:")
        lines.extend(f"- {ingredient}" for ingredient in recipe.ingredients)
    if recipe.instructions:
        lines.append("Instructions:")
        lines.extend(f"{i + 1}. {step}" for i, step in enumerate(recipe.instructions))
    if recipe.raw_content:
        lines.append("Full Content:")
        lines.append(recipe.raw_content[:MAX_CONTEXT_CHARS])
    return "\n".join(lines) + "\n"


def build_prompts(recipes: Sequence[ParsedRecipe]) -> Tuple[str, str]:
    """
    Build the system and user prompts for combining recipes.

    Returns:
        (system_prompt, user_prompt)
    """
    recipes_text = "\n---\n\n".join(
        format_recipe(recipe, index) for index, recipe in enumerate(recipes)
    )

    user_prompt = f"""Please combine the following recipes into a single meal prep guide:

{recipes_text}

Assume access to a standard home kitchen (oven, stovetop, microwave, common countertop tools).

Create a comprehensive meal prep guide that combines all these recipes efficiently. Make sure to:
 - Combine similar preparation steps
 - Schedule tasks to maximize parallel cooking
 - Provide clear timing and sequencing
 - Include all necessary steps from all recipes

Format the output as a clear, numbered guide. Avoid using recipe name sections if possible."""

    return SYSTEM_PROMPT, user_prompt


class RecipeCombiner:
    """Generates the combined meal prep guide."""

    def __init__(
        self,
        client: OpenAIClient,
        temperature: float = 0.7,
        max_tokens: int = 3000,
    ):
        self._client = client
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def combine(self, recipes: Sequence[ParsedRecipe]) -> str:
        """
        Generate the full guide in one response.

        Raises:
            GenerativeServiceError: If generation fails.
        """
        system_prompt, user_prompt = build_prompts(recipes)
        logger.info(f"Combining {len(recipes)} recipes into one guide")
        return await self._client.complete(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )

    def stream(self, recipes: Sequence[ParsedRecipe]) -> AsyncIterator[str]:
        """
        Stream the guide as text fragments in generation order.

        Raises:
            GenerativeServiceError: While iterating, if generation fails.
        """
        system_prompt, user_prompt = build_prompts(recipes)
        logger.info(f"Streaming combined guide for {len(recipes)} recipes")
        return self._client.stream(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
