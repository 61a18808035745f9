"""
Shared pytest fixtures and fakes for the tutoring agent tests.

Fakes stand in for the three seams of the core:
- FakeChannel: records messages, commits and indicator events
- ScriptedModelSession: replays scripted streams chunk by chunk
- FakeSearchProvider: canned web_search results
"""

import asyncio
import itertools
from typing import Any, Dict, List, Optional

import pytest

from agents.indicators import INDICATOR_CLEAR_EVENT, Indicator
from agents.stream import StreamEnd, TextFragment, ToolCall
from errors.result import Ok
from transport.base import ChannelMessage

# Marker inside a scripted reply: the stream blocks until ``resume`` is set
PAUSE = object()


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeChannel:
    """In-memory ChatChannel."""

    def __init__(self, cid: str = "messaging:test-channel"):
        self._cid = cid
        self._ids = itertools.count(1)
        self.messages: List[ChannelMessage] = []
        self.events: List[Dict[str, Any]] = []
        self.updates: List[tuple] = []
        self.disconnected = False
        self.send_message_error: Optional[Exception] = None

    @property
    def cid(self) -> str:
        return self._cid

    async def send_message(self, text: str, ai_generated: bool = True) -> ChannelMessage:
        if self.send_message_error is not None:
            raise self.send_message_error
        message = ChannelMessage(id=f"msg-{next(self._ids)}", cid=self._cid, text=text)
        self.messages.append(message)
        return message

    async def send_event(self, event: Dict[str, Any]) -> None:
        self.events.append(event)

    async def update_message(self, message_id: str, text: str, **extra: Any) -> None:
        self.updates.append((message_id, text, extra))

    async def disconnect(self) -> None:
        self.disconnected = True

    def states(self, message_id: Optional[str] = None) -> List[str]:
        """Indicator states in order, with clear events reported as CLEARED."""
        states = []
        for event in self.events:
            if message_id is not None and event.get("message_id") != message_id:
                continue
            if event["type"] == INDICATOR_CLEAR_EVENT:
                states.append(Indicator.CLEARED.value)
            else:
                states.append(event["ai_state"])
        return states

    def texts(self, message_id: str) -> List[str]:
        return [text for mid, text, _ in self.updates if mid == message_id]


class ScriptedModelSession:
    """ModelSession that replays one scripted reply per user turn.

    A reply is a list of items: ``str`` becomes a TextFragment (advancing the
    clock by ``step`` first), ToolCall/StreamEnd are yielded as-is, an
    exception instance is raised, and ``PAUSE`` blocks until ``resume`` is set
    or the token is cancelled.
    A StreamEnd with the joined text is appended unless the reply has one.
    """

    def __init__(
        self,
        replies: Optional[List[list]] = None,
        follow_up: str = "",
        clock: Optional[FakeClock] = None,
        step: float = 0.0,
        follow_up_error: Optional[Exception] = None,
        pause_follow_up: bool = False,
    ):
        self.replies = list(replies or [])
        self.follow_up = follow_up
        self.follow_up_error = follow_up_error
        self.pause_follow_up = pause_follow_up
        self.clock = clock
        self.step = step
        self.sent: List[str] = []
        self.tool_responses: List[list] = []
        self.closed = False
        self.pending_calls: List[ToolCall] = []
        self.abandoned: List[ToolCall] = []
        self.paused = asyncio.Event()
        self.resume = asyncio.Event()

    async def send_message_stream(self, text, token):
        self.sent.append(text)
        reply = self.replies.pop(0) if self.replies else []
        parts = []
        for item in reply:
            if token.cancelled:
                return
            if item is PAUSE:
                await self._pause(token)
                continue
            if isinstance(item, BaseException):
                raise item
            if isinstance(item, str):
                if self.clock is not None:
                    self.clock.advance(self.step)
                parts.append(item)
                yield TextFragment(item)
            else:
                if isinstance(item, ToolCall):
                    self.pending_calls.append(item)
                yield item
        if token.cancelled:
            return
        if not any(isinstance(item, StreamEnd) for item in reply):
            yield StreamEnd("".join(parts))

    async def _pause(self, token):
        self.paused.set()
        waiters = [asyncio.ensure_future(self.resume.wait()), asyncio.ensure_future(token.wait())]
        await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        for waiter in waiters:
            waiter.cancel()

    async def send_tool_responses(self, responses, token):
        self.tool_responses.append(list(responses))
        self.pending_calls = []
        if self.follow_up_error is not None:
            raise self.follow_up_error
        if self.pause_follow_up:
            await self._pause(token)
            if token.cancelled:
                return ""
        return self.follow_up

    def abandon_tool_calls(self):
        closed = len(self.pending_calls)
        self.abandoned.extend(self.pending_calls)
        self.pending_calls = []
        return closed

    async def aclose(self):
        self.closed = True


class FakeSearchProvider:
    """ToolProvider returning a canned result (or raising ``error``).

    With ``block=True`` each search sets ``started`` and waits for ``release``.
    """

    def __init__(self, result=None, error: Optional[Exception] = None, block: bool = False):
        self.result = result if result is not None else Ok({"answer": "", "results": []})
        self.error = error
        self.block = block
        self.queries: List[str] = []
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def search(self, query: str):
        self.queries.append(query)
        if self.block:
            self.started.set()
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.result


def web_search_call(query: str, call_id: str = "call_0") -> ToolCall:
    return ToolCall(name="web_search", args={"query": query}, id=call_id)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def search_provider():
    return FakeSearchProvider()
