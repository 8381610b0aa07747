"""
Utility modules.
"""
from mealprep.utils.text import clean_item_text, matching_key, normalize_whitespace

__all__ = ["clean_item_text", "matching_key", "normalize_whitespace"]
