"""
External API client modules.

This module contains clients for interacting with external services
such as OpenAI for recipe extraction, guide generation and consolidation.
"""

from mealprep.clients.openai_client import OpenAIClient, describe_error

__all__ = ["OpenAIClient", "describe_error"]
