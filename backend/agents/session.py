"""
Chalkboard Chat Session - Conversation state for one channel

Dataclass holding the ordered turn history of the live model conversation.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional


@dataclass
class ChatSession:
    """Holds conversation state for a single chat channel.

    Turns are stored in chat-completions message format and only ever
    appended; the history is dropped as a whole when the owning agent is
    disposed.

    Attributes:
        channel_id: Channel this conversation belongs to
        turns: Ordered list of turn dicts (role, content, tool fields)
        turn_lock: Serializes model exchanges so turns from two responses
            never interleave
    """

    channel_id: str
    turns: List[Dict[str, Any]] = field(default_factory=list)
    turn_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    def append_user(self, text: str) -> None:
        """Append a user turn."""
        self.turns.append({"role": "user", "content": text})

    def append_assistant(self, text: str, tool_calls: Optional[List[Dict[str, Any]]] = None) -> None:
        """Append a model turn, optionally carrying the tool calls it requested."""
        turn: Dict[str, Any] = {"role": "assistant", "content": text}
        if tool_calls:
            turn["tool_calls"] = tool_calls
            # Chat completions expects null content alongside tool calls
            if not text:
                turn["content"] = None
        self.turns.append(turn)

    def append_tool_response(self, call_id: str, name: str, content: str) -> None:
        """Append a tool-response turn answering the tool call ``call_id``."""
        self.turns.append({"role": "tool", "tool_call_id": call_id, "name": name, "content": content})

    def unanswered_tool_calls(self) -> List[Dict[str, str]]:
        """Tool calls of the latest assistant turn that have no tool-response turn yet.

        Returns:
            List of ``{"id": ..., "name": ...}`` in the order the model issued them
        """
        for index in range(len(self.turns) - 1, -1, -1):
            turn = self.turns[index]
            if turn["role"] != "assistant":
                continue
            if not turn.get("tool_calls"):
                return []
            answered = {t.get("tool_call_id") for t in self.turns[index + 1:] if t["role"] == "tool"}
            return [
                {"id": call["id"], "name": call["function"]["name"]}
                for call in turn["tool_calls"]
                if call["id"] not in answered
            ]
        return []

    def get_messages_for_llm(self, system_prompt: str) -> List[Dict[str, Any]]:
        """Build message list for an LLM call.

        Args:
            system_prompt: The system prompt to use

        Returns:
            List of message dicts ready for the chat completions API
        """
        messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        messages.extend(self.turns)
        return messages

    @property
    def turn_count(self) -> int:
        return len(self.turns)

    def clear(self) -> None:
        """Drop the whole conversation (agent disposal only)."""
        self.turns = []

    def to_dict(self) -> Dict[str, Any]:
        """Serialize session to a dictionary (diagnostics only, never persisted).

        Returns:
            Dict representation of session state
        """
        return {
            "channel_id": self.channel_id,
            "turn_count": self.turn_count,
            "turns": list(self.turns),
        }
