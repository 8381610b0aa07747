"""
Protocol definition for HTML extraction strategies.

Defines the interface that every scraping strategy implements, plus the
first-non-empty-wins chain runner used by the source extractor.
"""

import logging
from typing import List, Optional, Protocol, Sequence, Tuple

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


class ExtractionStrategy(Protocol):
    """
    Protocol for one scraping heuristic.

    Strategies are pure functions of the parsed page, so each can be tested
    on a small HTML snippet and new ones can be appended to a chain without
    touching the extractor.
    """

    name: str

    def extract(self, soup: BeautifulSoup) -> List[str]:
        """
        Extract text items from a parsed page.

        Args:
            soup: The parsed recipe page.

        Returns:
            Extracted items in document order; empty when the strategy
            does not apply to this page.
        """
        ...


def run_strategy_chain(
    strategies: Sequence[ExtractionStrategy],
    soup: BeautifulSoup,
) -> Tuple[List[str], Optional[str]]:
    """
    Run strategies in order and return the first non-empty result.

    Returns:
        (items, name of the strategy that produced them). Items is empty and
        the name is None when no strategy matched.
    """
    for strategy in strategies:
        items = strategy.extract(soup)
        if items:
            logger.debug(f"Strategy {strategy.name} extracted {len(items)} items")
            return items, strategy.name
    return [], None
