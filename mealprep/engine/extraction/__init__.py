"""
Recipe extraction module.

This module turns raw recipe sources (page URLs or pasted text) into
normalized ParsedRecipe records.

Two extraction approaches are combined:
1. HTML strategy chains - fast, rule-based scraping of recipe pages
2. LLMRecipeExtractor - generative extraction for pasted text and as a
   fallback for pages the heuristics cannot read

SourceExtractor wires both together.
"""

from mealprep.engine.extraction.extractor import SourceExtractor, manual_recipe
from mealprep.engine.extraction.html import (
    INGREDIENT_STRATEGIES,
    INSTRUCTION_STRATEGIES,
    IngredientContainerListItems,
    InstructionParagraphs,
    LeafIngredientElements,
    MarkedIngredientItems,
    MarkedInstructionElements,
)
from mealprep.engine.extraction.llm import LLMRecipeExtractor
from mealprep.engine.extraction.models import ExtractedRecipe
from mealprep.engine.extraction.protocol import ExtractionStrategy, run_strategy_chain

__all__ = [
    # Extractors
    "SourceExtractor",
    "LLMRecipeExtractor",
    "manual_recipe",
    # Models
    "ExtractedRecipe",
    # Strategies
    "ExtractionStrategy",
    "run_strategy_chain",
    "INGREDIENT_STRATEGIES",
    "INSTRUCTION_STRATEGIES",
    "MarkedIngredientItems",
    "LeafIngredientElements",
    "IngredientContainerListItems",
    "MarkedInstructionElements",
    "InstructionParagraphs",
]
