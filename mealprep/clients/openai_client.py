"""
OpenAI API client with model fallback and error handling.

Provides an async wrapper around the OpenAI API shared by recipe extraction,
guide combination and ingredient consolidation. The client is built once at
start-up from Settings and handed to each component.
"""

import json
import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from mealprep.config import Settings
from mealprep.errors import GenerativeNotConfiguredError, GenerativeServiceError

logger = logging.getLogger(__name__)


CONNECTIVITY_HINT = (
    "Check your internet connection and that api.openai.com is reachable."
)
AUTHENTICATION_HINT = "Check that OPENAI_API_KEY is valid."
RATE_LIMIT_HINT = "The OpenAI rate limit or quota was exceeded; try again shortly."


def describe_error(error: Exception) -> str:
    """
    Summarize an upstream error for end users.

    Only the upstream message is kept (never a traceback), followed by a
    static troubleshooting hint for well-known failure classes.
    """
    summary = str(error).strip() or type(error).__name__
    if isinstance(error, openai.APIConnectionError):
        return f"{summary}. {CONNECTIVITY_HINT}"
    if isinstance(error, openai.AuthenticationError):
        return f"{summary}. {AUTHENTICATION_HINT}"
    if isinstance(error, openai.RateLimitError):
        return f"{summary}. {RATE_LIMIT_HINT}"
    return summary


class OpenAIClient:
    """
    Client for interacting with the OpenAI chat completions API.

    Provides methods for:
    - Plain text completions
    - Structured JSON responses
    - Streaming completions delivered fragment by fragment

    Every call first tries the configured model. If that fails with an error
    indicating the model itself is unavailable, the call is retried once with
    the fallback model (unless the configured model already is the fallback).

    Example:
        >>> client = OpenAIClient.from_settings(settings)
        >>> data = await client.parse_json(
        ...     system_prompt="You extract recipes...",
        ...     user_prompt="Extract the recipe from this text: ...",
        ... )
    """

    def __init__(
        self,
        client: Optional[Any],
        model: str = "gpt-4",
        fallback_model: str = "gpt-3.5-turbo",
    ):
        """
        Args:
            client: An AsyncOpenAI-compatible client, or None when no API key
                is configured (calls then raise GenerativeNotConfiguredError).
            model: Primary model name.
            fallback_model: Model used when the primary model is unavailable.
        """
        self._client = client
        self.model = model
        self.fallback_model = fallback_model

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIClient":
        """Build the client from application settings."""
        client = None
        if settings.openai_api_key:
            client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.openai_timeout_seconds,
                max_retries=settings.openai_max_retries,
            )
        else:
            logger.warning("OPENAI_API_KEY not set; generative features are disabled")
        return cls(
            client=client,
            model=settings.openai_model,
            fallback_model=settings.openai_fallback_model,
        )

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        if self._client is not None:
            await self._client.close()

    def _require_client(self) -> Any:
        if self._client is None:
            raise GenerativeNotConfiguredError()
        return self._client

    def _should_fall_back(self, error: Exception, model: str) -> bool:
        """Whether an error means the model itself is unavailable."""
        if model == self.fallback_model:
            return False
        if isinstance(error, openai.NotFoundError):
            return True
        return model in str(error)

    @staticmethod
    def _messages(system_prompt: str, user_prompt: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

    async def _create(self, model: str, messages: List[Dict[str, str]], **kwargs) -> Any:
        client = self._require_client()
        return await client.chat.completions.create(
            model=model,
            messages=messages,
            **kwargs,
        )

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        response_format: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Send a completion request to OpenAI.

        Args:
            system_prompt: Instructions for the model behavior.
            user_prompt: The user's input to process.
            temperature: Sampling temperature.
            max_tokens: Upper bound on generated tokens.
            response_format: Optional format specification (e.g., {"type": "json_object"}).

        Returns:
            The model's response content as a string.

        Raises:
            GenerativeServiceError: If the API call fails on every allowed model.
        """
        messages = self._messages(system_prompt, user_prompt)
        kwargs: Dict[str, Any] = {
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if response_format:
            kwargs["response_format"] = response_format

        model = self.model
        try:
            response = await self._create(model, messages, **kwargs)
        except GenerativeServiceError:
            raise
        except Exception as e:
            if not self._should_fall_back(e, model):
                logger.error(f"OpenAI API call failed: {e}")
                raise GenerativeServiceError(
                    f"OpenAI API call failed: {describe_error(e)}",
                    details={"model": model},
                ) from e

            logger.info(f"Model {model} unavailable, falling back to {self.fallback_model}")
            model = self.fallback_model
            try:
                response = await self._create(model, messages, **kwargs)
            except Exception as fallback_error:
                logger.error(f"OpenAI API call failed on fallback model: {fallback_error}")
                raise GenerativeServiceError(
                    f"OpenAI API call failed: {describe_error(fallback_error)}",
                    details={"model": model},
                ) from fallback_error

        content = response.choices[0].message.content
        return (content or "").strip()

    async def parse_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> Dict[str, Any]:
        """
        Send a completion request and parse the JSON response.

        This is a convenience method that combines complete() with JSON parsing.

        Returns:
            Parsed JSON response as a dictionary.

        Raises:
            GenerativeServiceError: If the API call fails or the response is
                not a JSON object.
        """
        response = await self.complete(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
        )

        try:
            data = json.loads(response)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON response: {e}")
            raise GenerativeServiceError(f"Failed to parse JSON response: {e}") from e

        if not isinstance(data, dict):
            raise GenerativeServiceError(
                f"Expected a JSON object, got {type(data).__name__}"
            )
        return data

    async def _stream_model(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> AsyncIterator[str]:
        stream = await self._create(
            model,
            messages,
            temperature=temperature,
            max_tokens=max_tokens,
            stream=True,
        )
        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        finally:
            # Releases the upstream HTTP response when the consumer stops early
            await stream.close()

    async def stream(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.7,
        max_tokens: int = 3000,
    ) -> AsyncIterator[str]:
        """
        Stream a completion as text fragments, in generation order.

        The fallback model is only tried when the primary model fails before
        producing any fragment; a failure after the first fragment is final.

        Yields:
            Non-empty text fragments.

        Raises:
            GenerativeServiceError: If streaming fails.
        """
        messages = self._messages(system_prompt, user_prompt)
        model = self.model
        delivered = False
        try:
            async with aclosing(
                self._stream_model(model, messages, temperature, max_tokens)
            ) as fragments:
                async for fragment in fragments:
                    delivered = True
                    yield fragment
            return
        except GenerativeServiceError:
            raise
        except Exception as e:
            if delivered or not self._should_fall_back(e, model):
                logger.error(f"OpenAI streaming call failed: {e}")
                raise GenerativeServiceError(
                    f"Failed to generate meal prep guide: {describe_error(e)}",
                    details={"model": model},
                ) from e
            logger.info(
                f"Model {model} unavailable, falling back to {self.fallback_model} (streaming)"
            )

        model = self.fallback_model
        try:
            async with aclosing(
                self._stream_model(model, messages, temperature, max_tokens)
            ) as fragments:
                async for fragment in fragments:
                    yield fragment
        except Exception as e:
            logger.error(f"OpenAI streaming call failed on fallback model: {e}")
            raise GenerativeServiceError(
                f"Failed to generate meal prep guide: {describe_error(e)}",
                details={"model": model},
            ) from e
