"""
LLM Client - streams a Gemini conversation through the OpenAI SDK.

Gemini serves an OpenAI-compatible chat completions API, so the async
OpenAI client is pointed at it and the conversation is replayed from the
channel's ChatSession on every call.

Key translations:
- Streaming: ChatCompletionChunk deltas -> TextFragment
- Tool calls: argument fragments reassembled by delta index -> ToolCall
- Tool results: ToolResponse -> {"role": "tool", "tool_call_id": ...} turns
- Errors: SDK timeout/connection errors -> StreamError; status errors
  (e.g. 429) propagate so the classifier can read status_code and body
"""

import json
import logging
import time
from typing import Any, AsyncIterator, Dict, List, Optional

from openai import APIConnectionError, APITimeoutError, AsyncOpenAI

from agents.cancellation import CancellationToken
from agents.session import ChatSession
from agents.stream import StreamChunk, StreamEnd, TextFragment, ToolCall, ToolResponse
from config import RuntimeConfig, runtime_config
from errors import StreamError, ToolError, error_response
from logging_config import log_llm

logger = logging.getLogger(__name__)


def _merge_tool_call_deltas(pending: Dict[int, Dict[str, Any]], deltas) -> None:
    """Accumulate streamed tool-call fragments keyed by their index.

    The first fragment for an index carries the id and function name; later
    fragments only extend the JSON arguments string.
    """
    for tc in deltas:
        index = tc.index if tc.index is not None else len(pending)
        entry = pending.setdefault(index, {"id": "", "name": "", "arguments": ""})
        if tc.id:
            entry["id"] = tc.id
        fn = tc.function
        if fn is None:
            continue
        if fn.name:
            entry["name"] = fn.name
        if fn.arguments:
            entry["arguments"] += fn.arguments


def _finalize_tool_calls(pending: Dict[int, Dict[str, Any]]) -> List[ToolCall]:
    """Translate accumulated fragments to ToolCall records, in index order."""
    calls = []
    for i, index in enumerate(sorted(pending)):
        entry = pending[index]
        raw_args = entry["arguments"]
        try:
            args = json.loads(raw_args) if raw_args else {}
        except json.JSONDecodeError:
            logger.warning(f"Failed to parse tool call arguments: {raw_args}")
            args = {}
        if not isinstance(args, dict):
            args = {}
        calls.append(ToolCall(name=entry["name"], args=args, id=entry["id"] or f"call_{i}"))
    return calls


def _tool_call_to_openai(call: ToolCall) -> Dict[str, Any]:
    return {
        "id": call.id,
        "type": "function",
        "function": {"name": call.name, "arguments": json.dumps(call.args)},
    }


def _translate_error(error: APIConnectionError, model: str) -> StreamError:
    """Map transport-level SDK failures onto StreamError."""
    # APITimeoutError subclasses APIConnectionError, so check it first
    if isinstance(error, APITimeoutError):
        return StreamError("Model request timed out", details=str(error), model=model, error_type="timeout")
    return StreamError("Model service unreachable", details=str(error), model=model, error_type="unavailable")


class OpenAIModelSession:
    """Live model conversation over the async OpenAI client."""

    def __init__(
        self,
        client: AsyncOpenAI,
        session: ChatSession,
        system_prompt: str,
        tools: Optional[List[Dict[str, Any]]] = None,
        model: str = "gemini-2.5-pro",
        llm_params: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            client: Async OpenAI client (base URL already pointing at Gemini)
            session: Conversation history this model session appends to
            system_prompt: System instruction sent ahead of every call
            tools: Tool schema in chat completions function format
            model: Model name
            llm_params: Sampling parameters (temperature, top_p)
        """
        self._client = client
        self.session = session
        self.system_prompt = system_prompt
        self.tools = tools or []
        self.model = model
        self.llm_params = llm_params or {}

    @classmethod
    def from_config(
        cls,
        session: ChatSession,
        system_prompt: str,
        tools: Optional[List[Dict[str, Any]]] = None,
        config: Optional[RuntimeConfig] = None,
    ) -> "OpenAIModelSession":
        config = config or runtime_config
        client = AsyncOpenAI(
            base_url=config.llm_base_url,
            api_key=config.gemini_api_key,
            timeout=config.llm_timeout,
        )
        return cls(
            client,
            session,
            system_prompt,
            tools=tools,
            model=config.model_chat,
            llm_params=config.get_llm_params(),
        )

    def _request_kwargs(self, **extra) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": self.session.get_messages_for_llm(self.system_prompt),
        }
        kwargs.update(self.llm_params)
        if self.tools:
            kwargs["tools"] = self.tools
        kwargs.update(extra)
        return kwargs

    async def send_message_stream(self, text: str, token: CancellationToken) -> AsyncIterator[StreamChunk]:
        """Submit a user turn and stream the reply.

        Yields TextFragment items as content arrives, then one ToolCall per
        requested call, then a single StreamEnd with the aggregate text.
        Nothing more is yielded once the token is cancelled.
        """
        self.session.append_user(text)
        log_llm(logger, "start", model=self.model)
        start = time.time()

        try:
            stream = await token.run(self._client.chat.completions.create(stream=True, **self._request_kwargs()))
        except (APITimeoutError, APIConnectionError) as e:
            raise _translate_error(e, self.model) from e
        if stream is None:
            return

        parts: List[str] = []
        pending: Dict[int, Dict[str, Any]] = {}
        try:
            async for chunk in stream:
                if token.cancelled:
                    break
                delta = chunk.choices[0].delta if chunk.choices else None
                if not delta:
                    continue
                if delta.tool_calls:
                    _merge_tool_call_deltas(pending, delta.tool_calls)
                if delta.content:
                    parts.append(delta.content)
                    yield TextFragment(delta.content)
        except (APITimeoutError, APIConnectionError) as e:
            raise _translate_error(e, self.model) from e
        finally:
            await stream.close()

        full_text = "".join(parts)
        if token.cancelled:
            # Keep what the user already saw; drop unanswered tool calls
            if full_text:
                self.session.append_assistant(full_text)
            return

        calls = _finalize_tool_calls(pending)
        self.session.append_assistant(full_text, tool_calls=[_tool_call_to_openai(c) for c in calls])
        log_llm(logger, "end", model=self.model, duration=time.time() - start)

        for call in calls:
            yield call
        yield StreamEnd(full_text)

    async def send_tool_responses(self, responses: List[ToolResponse], token: CancellationToken) -> str:
        """Submit tool-response turns and return the follow-up completion text.

        The follow-up request disables further tool use, so the model answers
        from the results it was given.
        """
        for response in responses:
            self.session.append_tool_response(response.call.id, response.call.name, response.to_content())

        log_llm(logger, "start", model=self.model)
        start = time.time()
        kwargs = self._request_kwargs(stream=False)
        if self.tools:
            kwargs["tool_choice"] = "none"

        try:
            completion = await token.run(self._client.chat.completions.create(**kwargs))
        except (APITimeoutError, APIConnectionError) as e:
            raise _translate_error(e, self.model) from e
        if completion is None:
            return ""

        text = ""
        if completion.choices:
            text = completion.choices[0].message.content or ""
        self.session.append_assistant(text)
        log_llm(logger, "end", model=self.model, duration=time.time() - start)
        return text

    def abandon_tool_calls(self) -> int:
        """Close unanswered tool calls in the history with a cancelled payload.

        Chat completions rejects a history where an assistant tool_calls turn
        is not followed by a tool turn for each call id.
        """
        pending = self.session.unanswered_tool_calls()
        for call in pending:
            error = ToolError("Tool call cancelled before it completed", tool=call["name"], error_type="cancelled")
            content = json.dumps(error_response(error, tool=call["name"]), default=str)
            self.session.append_tool_response(call["id"], call["name"], content)
        if pending:
            logger.info(f"Closed {len(pending)} abandoned tool call(s) in {self.session.channel_id}")
        return len(pending)

    async def aclose(self) -> None:
        await self._client.close()
