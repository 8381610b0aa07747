"""
Tests for the OpenAI client wrapper: model fallback policy, JSON parsing,
streaming, and error summaries.
"""
import asyncio
from contextlib import aclosing
from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from mealprep.clients.openai_client import (
    AUTHENTICATION_HINT,
    CONNECTIVITY_HINT,
    OpenAIClient,
    describe_error,
)
from mealprep.config import get_settings
from mealprep.errors import GenerativeNotConfiguredError, GenerativeServiceError

MODEL_MISSING = RuntimeError("The model `gpt-4` does not exist or you do not have access to it.")


def collect(stream):
    async def _collect():
        return [fragment async for fragment in stream]

    return asyncio.run(_collect())


def complete(client, **kwargs):
    return asyncio.run(client.complete("system", "user", **kwargs))


class TestFromSettings:
    def test_builds_async_client_with_key(self):
        with patch("mealprep.clients.openai_client.AsyncOpenAI") as mock_cls:
            client = OpenAIClient.from_settings(
                get_settings(openai_api_key="sk-test", openai_timeout_seconds=12, openai_max_retries=1)
            )

        mock_cls.assert_called_once_with(api_key="sk-test", timeout=12, max_retries=1)
        assert client.configured
        assert client.model == "gpt-4"
        assert client.fallback_model == "gpt-3.5-turbo"

    def test_unconfigured_without_key(self):
        client = OpenAIClient.from_settings(get_settings(openai_api_key=None))
        assert not client.configured

    def test_calls_raise_when_unconfigured(self, unconfigured_client):
        with pytest.raises(GenerativeNotConfiguredError):
            complete(unconfigured_client)


class TestComplete:
    def test_returns_stripped_content(self, openai_client, fake_api):
        fake_api.queue("  hello  \n")
        assert complete(openai_client, temperature=0.1, max_tokens=50) == "hello"

        call = fake_api.calls[0]
        assert call["model"] == "gpt-4"
        assert call["temperature"] == 0.1
        assert call["max_tokens"] == 50
        assert call["messages"][0] == {"role": "system", "content": "system"}
        assert "response_format" not in call

    def test_none_content_is_empty_string(self, openai_client, fake_api):
        fake_api.queue(None)
        assert complete(openai_client) == ""

    def test_falls_back_when_model_unavailable(self, openai_client, fake_api):
        fake_api.queue(MODEL_MISSING, "from fallback")

        assert complete(openai_client) == "from fallback"
        assert fake_api.models == ["gpt-4", "gpt-3.5-turbo"]

    def test_falls_back_on_not_found(self, openai_client, fake_api):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        response = httpx.Response(404, request=request)
        fake_api.queue(
            openai.NotFoundError("not found", response=response, body=None),
            "ok",
        )

        assert complete(openai_client) == "ok"
        assert fake_api.models == ["gpt-4", "gpt-3.5-turbo"]

    def test_other_errors_do_not_fall_back(self, openai_client, fake_api):
        fake_api.queue(RuntimeError("server overloaded"))

        with pytest.raises(GenerativeServiceError) as exc_info:
            complete(openai_client)

        assert fake_api.models == ["gpt-4"]
        assert "server overloaded" in exc_info.value.message

    def test_no_fallback_when_already_on_fallback_model(self, fake_api):
        client = OpenAIClient(fake_api, model="gpt-3.5-turbo", fallback_model="gpt-3.5-turbo")
        fake_api.queue(RuntimeError("The model `gpt-3.5-turbo` does not exist"))

        with pytest.raises(GenerativeServiceError):
            complete(client)
        assert len(fake_api.calls) == 1

    def test_fallback_failure_raises(self, openai_client, fake_api):
        fake_api.queue(MODEL_MISSING, RuntimeError("still broken"))

        with pytest.raises(GenerativeServiceError) as exc_info:
            complete(openai_client)
        assert exc_info.value.details == {"model": "gpt-3.5-turbo"}


class TestParseJson:
    def test_parses_object(self, openai_client, fake_api):
        fake_api.queue('{"title": "Soup", "ingredients": []}')

        data = asyncio.run(openai_client.parse_json("s", "u"))

        assert data == {"title": "Soup", "ingredients": []}
        assert fake_api.calls[0]["response_format"] == {"type": "json_object"}

    @pytest.mark.parametrize("payload", ["not json", '["a", "b"]', "42"])
    def test_rejects_non_objects(self, openai_client, fake_api, payload):
        fake_api.queue(payload)
        with pytest.raises(GenerativeServiceError):
            asyncio.run(openai_client.parse_json("s", "u"))


class TestStream:
    def test_yields_non_empty_fragments(self, openai_client, fake_api):
        fake_api.queue(["Step 1", "", None, ": chop", "\n"])

        fragments = collect(openai_client.stream("s", "u"))

        assert fragments == ["Step 1", ": chop", "\n"]
        assert fake_api.calls[0]["stream"] is True
        assert fake_api.calls[0]["temperature"] == 0.7
        assert fake_api.calls[0]["max_tokens"] == 3000

    def test_falls_back_before_first_fragment(self, openai_client, fake_api):
        fake_api.queue(MODEL_MISSING, ["from ", "fallback"])

        assert collect(openai_client.stream("s", "u")) == ["from ", "fallback"]
        assert fake_api.models == ["gpt-4", "gpt-3.5-turbo"]

    def test_no_fallback_after_first_fragment(self, openai_client, fake_api):
        fake_api.queue(["partial", RuntimeError("The model `gpt-4` is overloaded")])
        received = []

        async def consume():
            async for fragment in openai_client.stream("s", "u"):
                received.append(fragment)

        with pytest.raises(GenerativeServiceError) as exc_info:
            asyncio.run(consume())

        # Nothing is delivered twice and the fallback model is never tried
        assert received == ["partial"]
        assert fake_api.models == ["gpt-4"]
        assert exc_info.value.message.startswith("Failed to generate meal prep guide")

    def test_early_close_releases_upstream_stream(self, openai_client, fake_api):
        fake_api.queue(["first", "second", "third"])

        async def take_first():
            async with aclosing(openai_client.stream("s", "u")) as fragments:
                async for fragment in fragments:
                    return fragment

        assert asyncio.run(take_first()) == "first"
        assert fake_api.streams[0].closed

    def test_completed_stream_is_closed(self, openai_client, fake_api):
        fake_api.queue(["only"])

        collect(openai_client.stream("s", "u"))

        assert fake_api.streams[0].closed

    def test_unconfigured_stream_raises(self, unconfigured_client):
        with pytest.raises(GenerativeNotConfiguredError):
            collect(unconfigured_client.stream("s", "u"))


class TestDescribeError:
    def test_connection_error_hint(self):
        error = openai.APIConnectionError(request=MagicMock())
        assert describe_error(error).endswith(CONNECTIVITY_HINT)

    def test_authentication_error_hint(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = openai.AuthenticationError(
            "Incorrect API key provided",
            response=httpx.Response(401, request=request),
            body=None,
        )
        summary = describe_error(error)
        assert summary.startswith("Incorrect API key provided")
        assert summary.endswith(AUTHENTICATION_HINT)

    def test_plain_error_has_no_hint(self):
        assert describe_error(ValueError("nope")) == "nope"

    def test_empty_message_uses_type_name(self):
        assert describe_error(TimeoutError()) == "TimeoutError"


class TestClose:
    def test_close_releases_client(self, openai_client, fake_api):
        asyncio.run(openai_client.close())
        assert fake_api.closed

    def test_close_without_client_is_noop(self, unconfigured_client):
        asyncio.run(unconfigured_client.close())
