"""
Chalkboard Response Handler - one streamed answer, start to finish

Drives a single response through its phases:
1. GENERATING: stream the model's reply into the placeholder message,
   committing partial text at most once per update interval
2. EXTERNAL_SOURCES: run the tool calls the model asked for and submit
   their results as tool-response turns
3. GENERATING: fetch the follow-up completion that uses those results
4. Final commit, then CLEARED

Any failure is caught once at the top, classified (quota vs generic) and
reported with an ERROR indicator. A stop request for the handler's message
ends the response immediately with CLEARED and no further text.
"""

import asyncio
import logging
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from config import runtime_config
from errors import StreamError, classify_error, log_error
from logging_config import log_indicator, log_message_out
from transport.base import ChannelMessage, ChatChannel, StopRequest

from .cancellation import CancellationToken
from .indicators import Indicator, indicator_event
from .model import ModelSession
from .stream import StreamEnd, TextFragment, ToolCall, ToolResponse
from .tools import ToolProvider, execute_tool_call

logger = logging.getLogger(__name__)


@dataclass
class StreamState:
    """Per-run accumulation state, threaded through the phases of one run.

    Attributes:
        text: Accumulated response text (append-only while streaming)
        chunk_count: Number of text chunks received
        last_commit_at: Clock reading of the last partial commit, None before the first
        final_text: Aggregate text reported by the end of the stream
        tool_calls: Tool calls surfaced by the stream, in arrival order
        commits: Number of partial commits made
    """

    text: str = ""
    chunk_count: int = 0
    last_commit_at: Optional[float] = None
    final_text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    commits: int = 0

    def append(self, fragment: str) -> None:
        self.text += fragment
        self.chunk_count += 1

    def commit_due(self, now: float, interval_s: float) -> bool:
        """True when at least ``interval_s`` has passed since the last partial commit."""
        if self.last_commit_at is None:
            return True
        return now - self.last_commit_at >= interval_s

    def mark_committed(self, now: float) -> None:
        self.last_commit_at = now
        self.commits += 1


class ResponseHandler:
    """Streams one model response into one outbound message.

    The handler is terminal once ``done`` is set: after that it performs no
    further commits or indicator changes. ``dispose()`` is idempotent and
    calls ``on_dispose`` exactly once, which detaches the handler from stop
    routing in the owning orchestrator.
    """

    def __init__(
        self,
        model_session: ModelSession,
        channel: ChatChannel,
        message: ChannelMessage,
        user_text: str,
        tool_provider: ToolProvider,
        on_dispose: Callable[["ResponseHandler"], None],
        turn_lock: Optional[asyncio.Lock] = None,
        update_interval_ms: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            model_session: Live model conversation to stream from
            channel: Channel the placeholder message lives in
            message: Placeholder message this handler owns
            user_text: User turn text (already context-annotated)
            tool_provider: Provider for web_search tool calls
            on_dispose: Removal callback, invoked once on disposal
            turn_lock: Lock serializing model exchanges on the shared session
            update_interval_ms: Minimum gap between partial commits
            clock: Monotonic clock in seconds
        """
        self.model_session = model_session
        self.channel = channel
        self.message = message
        self.user_text = user_text
        self.tool_provider = tool_provider
        self._on_dispose = on_dispose
        self._turn_lock = turn_lock or asyncio.Lock()
        if update_interval_ms is None:
            update_interval_ms = runtime_config.stream_update_interval_ms
        self._update_interval_s = update_interval_ms / 1000.0
        self._clock = clock

        self._token = CancellationToken()
        self._done = False
        self._disposed = False
        self.tools_used: List[str] = []

    @property
    def message_id(self) -> str:
        return self.message.id

    @property
    def done(self) -> bool:
        return self._done

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def token(self) -> CancellationToken:
        return self._token

    async def run(self) -> None:
        """Run the response to completion, error, or stop. Always disposes."""
        state = StreamState()
        try:
            if self._done:
                return
            await self._emit(Indicator.GENERATING)

            async with self._turn_lock:
                if self._done:
                    return
                try:
                    await self._stream_reply(state)
                    if self._done:
                        return

                    if state.tool_calls:
                        await self._answer_tool_calls(state)
                        if self._done:
                            return
                    elif state.final_text:
                        state.text = state.final_text
                finally:
                    # A stop between tool calls and their results leaves them unanswered
                    self.model_session.abandon_tool_calls()

            if not state.text:
                raise StreamError("The model returned an empty response", error_type="invalid")

            # Always commit: throttling may have skipped the last chunks
            await self.channel.update_message(self.message.id, state.text)
            if self._done:
                return
            self._done = True
            await self._emit(Indicator.CLEARED)
            log_message_out(
                logger,
                self.message.id,
                chars=len(state.text),
                chunks=state.chunk_count,
                tools_used=self.tools_used,
            )
        except Exception as e:
            log_error(logger, e, context=f"ResponseHandler {self.message.id}")
            await self._handle_error(e)
        finally:
            self.dispose()

    async def _stream_reply(self, state: StreamState) -> None:
        stream = self.model_session.send_message_stream(self.user_text, self._token)
        async with aclosing(stream):
            async for chunk in stream:
                if self._done:
                    break

                if isinstance(chunk, TextFragment):
                    if not chunk.text:
                        continue
                    state.append(chunk.text)
                    now = self._clock()
                    if state.commit_due(now, self._update_interval_s):
                        await self.channel.update_message(self.message.id, state.text)
                        state.mark_committed(now)
                elif isinstance(chunk, ToolCall):
                    state.tool_calls.append(chunk)
                elif isinstance(chunk, StreamEnd):
                    state.final_text = chunk.text

        logger.debug(
            f"Stream finished for {self.message.id}: {state.chunk_count} chunks, "
            f"{state.commits} partial commits, {len(state.tool_calls)} tool calls"
        )

    async def _answer_tool_calls(self, state: StreamState) -> None:
        await self._emit(Indicator.EXTERNAL_SOURCES)

        responses: List[ToolResponse] = []
        for call in state.tool_calls:
            if self._done:
                return
            responses.append(await execute_tool_call(self.tool_provider, call))
            self.tools_used.append(call.name)

        if self._done:
            return
        await self._emit(Indicator.GENERATING)
        text = await self.model_session.send_tool_responses(responses, self._token)
        if self._done:
            return
        state.text = text or state.text

    async def handle_stop(self, event: StopRequest) -> bool:
        """Stop this response if ``event`` targets its message.

        Returns:
            True if the event matched and the handler stopped
        """
        if self._done or event.message_id != self.message.id:
            return False

        logger.info(f"Stop generating for message {self.message.id}")
        self._done = True
        self._token.cancel()
        try:
            await self._emit(Indicator.CLEARED)
        finally:
            self.dispose()
        return True

    async def _handle_error(self, error: Exception) -> None:
        if self._done:
            return
        self._done = True

        classification = classify_error(error)
        if classification.is_quota:
            logger.error(
                f"Quota/billing error detected for {self.message.id}. "
                "The Google Cloud account needs attention."
            )

        await self._emit(Indicator.ERROR)
        await self.channel.update_message(
            self.message.id,
            classification.user_message,
            message=classification.raw,
        )

    async def _emit(self, indicator: Indicator) -> None:
        log_indicator(logger, indicator.name, self.message.id)
        await self.channel.send_event(indicator_event(indicator, self.message))

    def dispose(self) -> None:
        """Release the handler. Only the first call has any effect."""
        if self._disposed:
            return
        self._disposed = True
        self._done = True
        self._token.cancel()
        self._on_dispose(self)
