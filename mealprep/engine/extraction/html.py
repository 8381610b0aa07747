"""
Heuristic HTML extraction strategies for recipe pages.

Recipe sites use very different markup, so extraction is a chain of
heuristics tried in order (first non-empty result wins):

Ingredients:
1. MarkedIngredientItems - microdata items and list items under ingredient containers
2. LeafIngredientElements - ingredient-marked elements that contain no other marked elements
3. IngredientContainerListItems - filtered list items inside ingredient containers

Instructions:
1. MarkedInstructionElements - instruction/step marked elements and microdata
2. InstructionParagraphs - medium-length paragraphs

This is best-effort scraping; the generative fallback covers pages where
every heuristic comes back empty.
"""

import re
from typing import List, Set

from bs4 import BeautifulSoup, Comment, Tag

from mealprep.models.schemas import DEFAULT_URL_TITLE
from mealprep.utils.text import clean_item_text, compact_page_text, normalize_whitespace

INGREDIENT_MARKER = '[class*="ingredient"], [itemprop="recipeIngredient"]'
TITLE_SELECTORS = ["h1", '[class*="recipe-title"]', '[class*="recipe-name"]']

_NON_CONTENT_TAGS = {"script", "style", "noscript", "template"}


def _class_contains(tag: Tag, fragment: str) -> bool:
    """Substring match against the class attribute, like [class*="..."]."""
    classes = tag.get("class")
    if not classes:
        return False
    if isinstance(classes, str):
        return fragment in classes
    return fragment in " ".join(classes)


def is_ingredient_marked(tag: Tag) -> bool:
    """True for elements carrying an ingredient class or recipeIngredient microdata."""
    return _class_contains(tag, "ingredient") or tag.get("itemprop") == "recipeIngredient"


def is_instruction_container(tag: Tag) -> bool:
    return any(
        _class_contains(tag, fragment)
        for fragment in ("instruction", "step", "direction")
    )


def has_ingredient_ancestor(tag: Tag) -> bool:
    return any(is_ingredient_marked(parent) for parent in tag.parents)


def _append_unique(items: List[str], seen: Set[str], text: str) -> None:
    if text and text not in seen:
        seen.add(text)
        items.append(text)


class MarkedIngredientItems:
    """
    List items under ingredient containers and recipeIngredient microdata.

    Elements nested inside another ingredient-marked element are skipped so
    nested containers are not counted twice.
    """

    name = "marked_ingredient_items"
    SELECTOR = '[class*="ingredient"] li, [itemprop="recipeIngredient"]'

    def extract(self, soup: BeautifulSoup) -> List[str]:
        items: List[str] = []
        seen: Set[str] = set()
        for elem in soup.select(self.SELECTOR):
            if has_ingredient_ancestor(elem):
                continue
            _append_unique(items, seen, clean_item_text(elem.get_text()))
        return items


class LeafIngredientElements:
    """
    Ingredient-marked elements (spans, divs) that hold a single ingredient.

    Containers that wrap other marked elements are skipped so a whole list
    is never captured as one giant ingredient.
    """

    name = "leaf_ingredient_elements"
    MAX_LENGTH = 200

    def extract(self, soup: BeautifulSoup) -> List[str]:
        items: List[str] = []
        seen: Set[str] = set()
        for elem in soup.select(INGREDIENT_MARKER):
            if has_ingredient_ancestor(elem):
                continue
            if elem.select_one(INGREDIENT_MARKER) is not None:
                continue
            text = clean_item_text(elem.get_text())
            if len(text) < self.MAX_LENGTH:
                _append_unique(items, seen, text)
        return items


class IngredientContainerListItems:
    """
    Direct list items of lists inside ingredient containers.

    Applies text heuristics to reject navigation entries, URLs and lines
    that read like instructions.
    """

    name = "ingredient_container_list_items"
    SELECTOR = '[class*="ingredient"] ul > li, [class*="ingredient"] ol > li'

    MIN_LENGTH = 3
    MAX_LENGTH = 200

    # Lowercased fragments that mark navigation rather than ingredients
    NAVIGATION_MARKERS = ["menu", "navigation", "skip to"]

    # Lowercased prefixes of instruction lines
    INSTRUCTION_PREFIXES = ["step", "preheat"]

    URL_PATTERN = re.compile(r"^https?://")
    NUMBERED_STEP_PATTERN = re.compile(r"^\d+\.\s+[A-Z]")

    def looks_like_ingredient(self, text: str) -> bool:
        if not self.MIN_LENGTH < len(text) < self.MAX_LENGTH:
            return False
        lower = text.lower()
        if any(marker in lower for marker in self.NAVIGATION_MARKERS):
            return False
        if any(lower.startswith(prefix) for prefix in self.INSTRUCTION_PREFIXES):
            return False
        if self.URL_PATTERN.match(text) or self.NUMBERED_STEP_PATTERN.match(text):
            return False
        return True

    def extract(self, soup: BeautifulSoup) -> List[str]:
        items: List[str] = []
        seen: Set[str] = set()
        for elem in soup.select(self.SELECTOR):
            if elem.find_parent("li") is not None:
                continue
            if any(is_instruction_container(parent) for parent in elem.parents):
                continue
            text = clean_item_text(elem.get_text())
            if self.looks_like_ingredient(text):
                _append_unique(items, seen, text)
        return items


class MarkedInstructionElements:
    """Elements with instruction/step classes or recipeInstructions microdata."""

    name = "marked_instruction_elements"
    SELECTOR = (
        '[class*="instruction"], [class*="step"], [itemprop="recipeInstructions"]'
    )

    def extract(self, soup: BeautifulSoup) -> List[str]:
        steps = []
        for elem in soup.select(self.SELECTOR):
            text = normalize_whitespace(elem.get_text())
            if text:
                steps.append(text)
        return steps


class InstructionParagraphs:
    """Paragraphs long enough to be a step but short enough not to be an article."""

    name = "instruction_paragraphs"
    MIN_LENGTH = 50
    MAX_LENGTH = 500

    def extract(self, soup: BeautifulSoup) -> List[str]:
        steps = []
        for elem in soup.find_all("p"):
            text = elem.get_text().strip()
            if self.MIN_LENGTH < len(text) < self.MAX_LENGTH:
                steps.append(text)
        return steps


INGREDIENT_STRATEGIES = (
    MarkedIngredientItems(),
    LeafIngredientElements(),
    IngredientContainerListItems(),
)

INSTRUCTION_STRATEGIES = (
    MarkedInstructionElements(),
    InstructionParagraphs(),
)


def extract_title(soup: BeautifulSoup) -> str:
    """First non-empty heading or recipe title element, else a default."""
    for selector in TITLE_SELECTORS:
        elem = soup.select_one(selector)
        if elem is None:
            continue
        text = elem.get_text().strip()
        if text:
            return text
    return DEFAULT_URL_TITLE


def page_text(soup: BeautifulSoup) -> str:
    """Visible body text with scripts, styles and comments removed."""
    root = soup.body or soup
    parts = []
    for string in root.find_all(string=True):
        if isinstance(string, Comment):
            continue
        if string.parent is not None and string.parent.name in _NON_CONTENT_TAGS:
            continue
        parts.append(str(string))
    return compact_page_text("".join(parts))
