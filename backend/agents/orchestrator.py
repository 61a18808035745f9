"""
Chalkboard Session Orchestrator - one tutoring agent per chat channel

Owns the model conversation for a channel and turns inbound user messages
into Response Handlers:
1. Inbound message -> placeholder message + THINKING indicator
2. Spawn a ResponseHandler task bound to that placeholder
3. Route stop requests to the active handlers
4. Drop handlers from the active set as they dispose

Handlers run as independent tasks, so several responses can be in flight
at once. Their model exchanges are serialized on the session's turn lock so
the conversation history never interleaves.
"""

import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional, Set

from config import RuntimeConfig, runtime_config
from errors import (
    AgentError,
    ConfigurationError,
    ErrorCode,
    QuotaError,
    classify_error,
    is_quota_error,
    log_error,
)
from logging_config import log_message_in
from transport.base import ChannelMessage, ChatChannel, InboundMessage, StopRequest

from .indicators import Indicator, indicator_event
from .model import ModelSession
from .prompts import annotate_with_context, build_system_prompt
from .response_handler import ResponseHandler
from .session import ChatSession
from .tools import TOOL_DECLARATIONS, ToolProvider

logger = logging.getLogger(__name__)

# (session, system_prompt, tools, config) -> ModelSession
ModelSessionFactory = Callable[..., ModelSession]


def _default_model_session_factory(**kwargs) -> ModelSession:
    from services.llm_client import OpenAIModelSession

    return OpenAIModelSession.from_config(**kwargs)


def _default_tool_provider(config: RuntimeConfig) -> ToolProvider:
    from services.web_search import TavilySearchProvider

    return TavilySearchProvider.from_config(config)


class SessionOrchestrator:
    """Tutoring agent bound to a single chat channel.

    Entry points:
    - handle_message(): inbound message events
    - handle_stop(): stop-generating requests
    """

    def __init__(
        self,
        channel: ChatChannel,
        config: Optional[RuntimeConfig] = None,
        tool_provider: Optional[ToolProvider] = None,
        model_session_factory: Optional[ModelSessionFactory] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            channel: Chat channel this agent answers in
            config: Runtime configuration (defaults to the process singleton)
            tool_provider: Web search provider (defaults to Tavily from config)
            model_session_factory: Builds the model conversation at initialize()
            clock: Wall clock used for the last-interaction timestamp
        """
        self.channel = channel
        self.config = config or runtime_config
        self.tool_provider = tool_provider
        self._model_session_factory = model_session_factory or _default_model_session_factory
        self._clock = clock

        self.session: Optional[ChatSession] = None
        self.model_session: Optional[ModelSession] = None

        self._handlers: Dict[str, ResponseHandler] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._last_interaction = clock()
        self._disposed = False

    @property
    def initialized(self) -> bool:
        return self.model_session is not None

    @property
    def last_interaction(self) -> float:
        """Timestamp of the last accepted user message (read by idle sweepers)."""
        return self._last_interaction

    @property
    def active_handlers(self) -> Dict[str, ResponseHandler]:
        return dict(self._handlers)

    async def initialize(self) -> None:
        """Create the model conversation with the tutor prompt and tool schema.

        Raises:
            ConfigurationError: Model credential is not configured
            QuotaError: Provider rejected initialization for quota/billing reasons
        """
        if self._disposed:
            raise AgentError("Agent has been disposed", code=ErrorCode.INTERNAL_STATE_ERROR)

        if not self.config.gemini_api_key:
            raise ConfigurationError(
                "Gemini API key is required. Please set GEMINI_API_KEY environment variable.",
                setting="GEMINI_API_KEY",
            )

        try:
            session = ChatSession(channel_id=self.channel.cid)
            model_session = self._model_session_factory(
                session=session,
                system_prompt=build_system_prompt(),
                tools=TOOL_DECLARATIONS,
                config=self.config,
            )
            if self.tool_provider is None:
                self.tool_provider = _default_tool_provider(self.config)
        except Exception as e:
            if is_quota_error(e):
                logger.error(f"Gemini quota error during initialization: {e}", exc_info=True)
                raise QuotaError(details=str(e), provider="gemini") from e
            raise

        self.session = session
        self.model_session = model_session
        logger.info(f"Agent ready for channel {self.channel.cid} (model={self.config.model_chat})")

    async def handle_message(self, event: InboundMessage) -> Optional[ResponseHandler]:
        """Answer an inbound message.

        Agent-authored and empty messages are ignored. The response runs as a
        background task; this method returns as soon as it is scheduled.

        Returns:
            The spawned handler, or None if the message was ignored or failed
        """
        if self.model_session is None or self.session is None:
            logger.info(f"Agent for {self.channel.cid} not initialized, ignoring message")
            return None

        if event.ai_generated or not event.text:
            return None

        self._last_interaction = self._clock()
        log_message_in(logger, event.text, channel=self.channel.cid, context=event.context_tag or "-")
        user_text = annotate_with_context(event.text, event.context_tag)

        message: Optional[ChannelMessage] = None
        try:
            message = await self.channel.send_message("", ai_generated=True)
            await self.channel.send_event(indicator_event(Indicator.THINKING, message))

            if message.id in self._handlers:
                raise AgentError(
                    f"A response is already active for message {message.id}",
                    code=ErrorCode.INTERNAL_STATE_ERROR,
                )

            handler = ResponseHandler(
                model_session=self.model_session,
                channel=self.channel,
                message=message,
                user_text=user_text,
                tool_provider=self.tool_provider,
                on_dispose=self._remove_handler,
                turn_lock=self.session.turn_lock,
                update_interval_ms=self.config.stream_update_interval_ms,
            )
            self._handlers[message.id] = handler
            self._spawn(handler)
            return handler
        except Exception as e:
            log_error(logger, e, context="handle_message")
            if message is not None:
                classification = classify_error(e)
                await self.channel.send_event(indicator_event(Indicator.ERROR, message))
                await self.channel.update_message(message.id, classification.user_message)
            return None

    async def handle_stop(self, event: StopRequest) -> bool:
        """Route a stop request to the active handlers.

        Returns:
            True if a handler matched the target message and stopped
        """
        stopped = False
        for handler in list(self._handlers.values()):
            if await handler.handle_stop(event):
                stopped = True
        if not stopped:
            logger.debug(f"Stop request for {event.message_id} matched no active response")
        return stopped

    def _spawn(self, handler: ResponseHandler) -> None:
        task = asyncio.create_task(handler.run(), name=f"response-{handler.message_id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Response task {task.get_name()} failed: {exc}", exc_info=exc)

    def _remove_handler(self, handler: ResponseHandler) -> None:
        if self._handlers.get(handler.message_id) is handler:
            del self._handlers[handler.message_id]

    async def wait_idle(self) -> None:
        """Wait until every spawned response task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def pending_tasks(self) -> List[asyncio.Task]:
        return list(self._tasks)

    async def dispose(self) -> None:
        """Disconnect from the channel and release every handler and the session.

        Safe to call more than once.
        """
        if self._disposed:
            return
        self._disposed = True

        model_session = self.model_session
        self.model_session = None

        try:
            await self.channel.disconnect()
        except Exception as e:
            logger.warning(f"Channel disconnect failed for {self.channel.cid}: {e}")

        for handler in list(self._handlers.values()):
            handler.dispose()
        self._handlers.clear()

        if self.session is not None:
            self.session.clear()

        if model_session is not None:
            await model_session.aclose()

        logger.info(f"Agent for channel {self.channel.cid} disposed")
