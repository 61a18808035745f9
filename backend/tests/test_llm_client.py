"""
Tests for the OpenAI-compatible model session.

The AsyncOpenAI client is mocked; streamed chunks are built from
SimpleNamespace objects shaped like ChatCompletionChunk.
"""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from agents.cancellation import CancellationToken
from agents.response_handler import ResponseHandler
from agents.session import ChatSession
from agents.stream import StreamEnd, TextFragment, ToolCall, ToolResponse
from config import RuntimeConfig
from errors import ErrorCode, StreamError, is_quota_error
from errors.result import Ok
from services.llm_client import OpenAIModelSession
from transport.base import ChannelMessage, StopRequest

from conftest import FakeChannel, FakeSearchProvider

_REQUEST = httpx.Request("POST", "https://generativelanguage.googleapis.com/v1beta/openai/chat/completions")


# ---------------------------------------------------------------------------
# Helpers: fake SDK objects
# ---------------------------------------------------------------------------

def _chunk(content=None, tool_calls=None):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content, tool_calls=tool_calls))])


def _tool_delta(index, call_id=None, name=None, arguments=None):
    return SimpleNamespace(index=index, id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeStream:
    """Async-iterable stand-in for openai.AsyncStream."""

    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    async def close(self):
        self.closed = True


def _make_session(*responses, tools=None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=list(responses))
    client.close = AsyncMock()
    chat = ChatSession(channel_id="messaging:test")
    model = OpenAIModelSession(
        client,
        chat,
        system_prompt="You are a tutor.",
        tools=tools if tools is not None else [{"type": "function", "function": {"name": "web_search"}}],
        model="gemini-2.5-pro",
        llm_params={"temperature": 0.7, "top_p": 0.95},
    )
    return model, client, chat


async def _collect(stream):
    return [chunk async for chunk in stream]


class TestStreaming:
    """Text streaming and turn bookkeeping."""

    def test_text_fragments_then_stream_end(self):
        stream = FakeStream([_chunk("Hello"), _chunk(" there"), _chunk(None)])
        model, client, chat = _make_session(stream)

        chunks = asyncio.run(_collect(model.send_message_stream("hi", CancellationToken())))

        assert chunks == [TextFragment("Hello"), TextFragment(" there"), StreamEnd("Hello there")]
        assert stream.closed is True
        assert chat.turns == [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "Hello there"},
        ]

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["model"] == "gemini-2.5-pro"
        assert kwargs["temperature"] == 0.7
        assert kwargs["messages"][0] == {"role": "system", "content": "You are a tutor."}
        assert kwargs["messages"][-1] == {"role": "user", "content": "hi"}
        assert kwargs["tools"][0]["function"]["name"] == "web_search"

    def test_no_tools_omits_tool_schema(self):
        model, client, _ = _make_session(FakeStream([_chunk("ok")]), tools=[])

        asyncio.run(_collect(model.send_message_stream("hi", CancellationToken())))

        assert "tools" not in client.chat.completions.create.call_args.kwargs

    def test_chunks_without_choices_are_skipped(self):
        stream = FakeStream([SimpleNamespace(choices=[]), _chunk("x")])
        model, _, _ = _make_session(stream)

        chunks = asyncio.run(_collect(model.send_message_stream("hi", CancellationToken())))

        assert chunks == [TextFragment("x"), StreamEnd("x")]


class TestToolCallReassembly:
    """Tool-call argument fragments are merged by delta index."""

    def test_fragmented_arguments(self):
        stream = FakeStream([
            _chunk(tool_calls=[_tool_delta(0, call_id="call_a", name="web_search", arguments='{"que')]),
            _chunk(tool_calls=[_tool_delta(0, arguments='ry": "weather in Paris"}')]),
        ])
        model, _, chat = _make_session(stream)

        chunks = asyncio.run(_collect(model.send_message_stream("weather?", CancellationToken())))

        assert chunks == [
            ToolCall(name="web_search", args={"query": "weather in Paris"}, id="call_a"),
            StreamEnd(""),
        ]
        assistant = chat.turns[-1]
        assert assistant["role"] == "assistant"
        assert assistant["content"] is None
        assert assistant["tool_calls"][0]["id"] == "call_a"
        assert json.loads(assistant["tool_calls"][0]["function"]["arguments"]) == {"query": "weather in Paris"}

    def test_multiple_calls_keep_index_order(self):
        stream = FakeStream([
            _chunk(tool_calls=[
                _tool_delta(1, call_id="call_b", name="web_search", arguments='{"query": "b"}'),
                _tool_delta(0, call_id="call_a", name="web_search", arguments='{"query": "a"}'),
            ]),
        ])
        model, _, _ = _make_session(stream)

        chunks = asyncio.run(_collect(model.send_message_stream("x", CancellationToken())))

        assert [c.id for c in chunks if isinstance(c, ToolCall)] == ["call_a", "call_b"]

    def test_malformed_arguments_become_empty(self):
        stream = FakeStream([_chunk(tool_calls=[_tool_delta(0, name="web_search", arguments="{not json")])])
        model, _, _ = _make_session(stream)

        chunks = asyncio.run(_collect(model.send_message_stream("x", CancellationToken())))

        assert chunks[0] == ToolCall(name="web_search", args={}, id="call_0")


class TestToolResponses:
    """Follow-up completion after tool results."""

    def test_send_tool_responses(self):
        stream = FakeStream([_chunk(tool_calls=[_tool_delta(0, "call_a", "web_search", '{"query": "q"}')])])
        model, client, chat = _make_session(stream, _completion("Here is what I found."))
        token = CancellationToken()

        async def scenario():
            chunks = await _collect(model.send_message_stream("q?", token))
            call = chunks[0]
            return await model.send_tool_responses([ToolResponse(call=call, result=Ok({"answer": "A"}))], token)

        text = asyncio.run(scenario())

        assert text == "Here is what I found."
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["stream"] is False
        assert kwargs["tool_choice"] == "none"
        tool_turn = kwargs["messages"][-1]
        assert tool_turn["role"] == "tool"
        assert tool_turn["tool_call_id"] == "call_a"
        assert json.loads(tool_turn["content"]) == {"answer": "A"}
        assert chat.turns[-1] == {"role": "assistant", "content": "Here is what I found."}

    def test_empty_completion_returns_empty_text(self):
        model, _, _ = _make_session(_completion(None))
        text = asyncio.run(model.send_tool_responses([], CancellationToken()))
        assert text == ""


class TestCancellation:
    """A cancelled token stops the stream."""

    def test_cancelled_before_request(self):
        model, client, chat = _make_session(FakeStream([_chunk("never")]))
        token = CancellationToken()
        token.cancel()

        chunks = asyncio.run(_collect(model.send_message_stream("hi", token)))

        assert chunks == []
        assert chat.turns == [{"role": "user", "content": "hi"}]

    def test_cancelled_mid_stream(self):
        stream = FakeStream([_chunk("Hel"), _chunk("lo"), _chunk(" world")])
        model, _, chat = _make_session(stream)
        token = CancellationToken()

        async def scenario():
            received = []
            async for chunk in model.send_message_stream("hi", token):
                received.append(chunk)
                token.cancel()
            return received

        received = asyncio.run(scenario())

        assert received == [TextFragment("Hel")]
        assert stream.closed is True
        assert chat.turns[-1] == {"role": "assistant", "content": "Hel"}

    def test_cancelled_follow_up_returns_empty(self):
        model, _, _ = _make_session(_completion("late"))
        token = CancellationToken()
        token.cancel()

        assert asyncio.run(model.send_tool_responses([], token)) == ""


class TestErrors:
    """SDK failures are mapped or propagated."""

    def test_timeout_maps_to_stream_error(self):
        model, _, _ = _make_session(openai.APITimeoutError(request=_REQUEST))

        with pytest.raises(StreamError) as exc_info:
            asyncio.run(_collect(model.send_message_stream("hi", CancellationToken())))

        assert exc_info.value.code == ErrorCode.LLM_TIMEOUT

    def test_connection_error_maps_to_unavailable(self):
        model, _, _ = _make_session(openai.APIConnectionError(request=_REQUEST))

        with pytest.raises(StreamError) as exc_info:
            asyncio.run(_collect(model.send_message_stream("hi", CancellationToken())))

        assert exc_info.value.code == ErrorCode.LLM_UNAVAILABLE

    def test_error_during_iteration_closes_stream(self):
        stream = FakeStream([_chunk("partial")], error=openai.APIConnectionError(request=_REQUEST))
        model, _, _ = _make_session(stream)

        with pytest.raises(StreamError):
            asyncio.run(_collect(model.send_message_stream("hi", CancellationToken())))

        assert stream.closed is True

    def test_rate_limit_propagates_for_classification(self):
        response = httpx.Response(429, request=_REQUEST)
        error = openai.RateLimitError(
            "Resource has been exhausted",
            response=response,
            body={"error": {"code": 429, "status": "RESOURCE_EXHAUSTED"}},
        )
        model, _, _ = _make_session(error)

        with pytest.raises(openai.RateLimitError) as exc_info:
            asyncio.run(_collect(model.send_message_stream("hi", CancellationToken())))

        assert exc_info.value.status_code == 429
        assert is_quota_error(exc_info.value) is True


class TestAbandonedToolCalls:
    """A response stopped between tool calls and their results keeps the history valid."""

    def test_abandon_writes_cancelled_tool_turns(self):
        stream = FakeStream([_chunk(tool_calls=[_tool_delta(0, "call_a", "web_search", '{"query": "q"}')])])
        model, _, chat = _make_session(stream)

        asyncio.run(_collect(model.send_message_stream("q?", CancellationToken())))

        assert model.abandon_tool_calls() == 1
        tool_turn = chat.turns[-1]
        assert tool_turn["role"] == "tool"
        assert tool_turn["tool_call_id"] == "call_a"
        assert json.loads(tool_turn["content"])["code"] == "TOOL_CANCELLED"
        assert chat.unanswered_tool_calls() == []
        assert model.abandon_tool_calls() == 0

    def test_stop_during_search_leaves_history_usable(self):
        first = FakeStream([_chunk(tool_calls=[_tool_delta(0, "call_a", "web_search", '{"query": "weather"}')])])
        second = FakeStream([_chunk("Next answer")])
        model, client, chat = _make_session(first, second)
        channel = FakeChannel()
        provider = FakeSearchProvider(Ok({"answer": "Sunny"}), block=True)

        def make_handler(message_id, text):
            return ResponseHandler(
                model_session=model,
                channel=channel,
                message=ChannelMessage(id=message_id, cid=channel.cid),
                user_text=text,
                tool_provider=provider,
                on_dispose=lambda handler: None,
                turn_lock=chat.turn_lock,
                update_interval_ms=0,
            )

        async def scenario():
            stopped = make_handler("m1", "weather?")
            task = asyncio.create_task(stopped.run())
            await provider.started.wait()
            await stopped.handle_stop(StopRequest(message_id="m1"))
            provider.release.set()
            await task

            await make_handler("m2", "thanks").run()

        asyncio.run(scenario())

        assert client.chat.completions.create.await_count == 2
        messages = client.chat.completions.create.call_args.kwargs["messages"]
        roles = [m["role"] for m in messages]
        assert roles == ["system", "user", "assistant", "tool", "user"]
        assert messages[3]["tool_call_id"] == "call_a"
        assert channel.texts("m2")[-1] == "Next answer"
        assert channel.texts("m1") == []


class TestLifecycle:
    """Construction from config and teardown."""

    def test_from_config(self):
        config = RuntimeConfig()
        config.gemini_api_key = "key-123"
        config.model_chat = "gemini-2.5-flash"
        config.temperature = 0.3

        with patch("services.llm_client.AsyncOpenAI") as mock_client_cls:
            model = OpenAIModelSession.from_config(
                session=ChatSession(channel_id="c"), system_prompt="p", tools=[], config=config
            )

        call_kwargs = mock_client_cls.call_args.kwargs
        assert call_kwargs["api_key"] == "key-123"
        assert call_kwargs["base_url"] == config.llm_base_url
        assert model.model == "gemini-2.5-flash"
        assert model.llm_params["temperature"] == 0.3

    def test_aclose_closes_client(self):
        model, client, _ = _make_session()
        asyncio.run(model.aclose())
        client.close.assert_awaited_once()
