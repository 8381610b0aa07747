"""
Text cleanup helpers shared by scraping and consolidation.
"""
import re

# Checkbox and bullet glyphs that recipe sites render in front of list items
_BULLET_GLYPHS = re.compile(r"[▢□▪▫•◦]")
_WHITESPACE = re.compile(r"\s+")
_INLINE_WHITESPACE = re.compile(r"[ \t\r\f\v]+")
_LINE_BREAKS = re.compile(r"\s*\n\s*")


def normalize_whitespace(value: str) -> str:
    """Collapse every run of whitespace into one space and trim."""
    return _WHITESPACE.sub(" ", value).strip()


def clean_item_text(value: str) -> str:
    """
    Clean one scraped list item.

    Examples:
        >>> clean_item_text("▢  2 cups\\n   flour ")
        '2 cups flour'
    """
    return normalize_whitespace(_BULLET_GLYPHS.sub("", value))


def compact_page_text(value: str) -> str:
    """Collapse spacing inside lines and drop blank lines, keeping line structure."""
    value = _INLINE_WHITESPACE.sub(" ", value)
    return _LINE_BREAKS.sub("\n", value).strip()


def matching_key(value: str) -> str:
    """Case- and whitespace-insensitive key used to match ingredient lines."""
    return normalize_whitespace(value).lower()
