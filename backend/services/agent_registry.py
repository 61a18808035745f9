"""
Agent Registry - live tutoring agents keyed by channel.

One agent per channel. The idle sweep in main.py disposes agents whose
channel has gone quiet for longer than ``agent_idle_timeout_s``.
"""

import logging
import time
from typing import Dict, List, Optional

from agents.orchestrator import SessionOrchestrator

logger = logging.getLogger(__name__)


class AgentRegistry:
    """In-memory map of channel id -> SessionOrchestrator."""

    def __init__(self):
        self._agents: Dict[str, SessionOrchestrator] = {}

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, channel_id: str) -> bool:
        return channel_id in self._agents

    def channel_ids(self) -> List[str]:
        return list(self._agents)

    def get(self, channel_id: str) -> Optional[SessionOrchestrator]:
        return self._agents.get(channel_id)

    def register(self, agent: SessionOrchestrator) -> Optional[SessionOrchestrator]:
        """Register ``agent`` under its channel id.

        Returns:
            The agent it replaced, if any. The caller owns its disposal.
        """
        channel_id = agent.channel.cid
        previous = self._agents.get(channel_id)
        self._agents[channel_id] = agent
        if previous is not None and previous is not agent:
            logger.info(f"Agent for {channel_id} replaced by a new connection")
            return previous
        return None

    def unregister(self, channel_id: str, agent: Optional[SessionOrchestrator] = None) -> bool:
        """Remove the agent for ``channel_id``.

        When ``agent`` is given, only remove it if it is still the registered
        one, so a closing connection never evicts its replacement.
        """
        current = self._agents.get(channel_id)
        if current is None:
            return False
        if agent is not None and current is not agent:
            return False
        del self._agents[channel_id]
        return True

    async def dispose_idle(self, max_idle_s: float, now: Optional[float] = None) -> int:
        """Dispose agents idle for at least ``max_idle_s`` seconds.

        Returns:
            Number of agents disposed
        """
        now = time.time() if now is None else now
        idle = [
            (channel_id, agent)
            for channel_id, agent in self._agents.items()
            if now - agent.last_interaction >= max_idle_s
        ]

        for channel_id, agent in idle:
            self.unregister(channel_id, agent)
            try:
                await agent.dispose()
            except Exception as e:
                logger.warning(f"Failed to dispose idle agent {channel_id}: {e}", exc_info=True)

        if idle:
            logger.info(f"Idle sweep: disposed {len(idle)} agent(s), {len(self._agents)} active")
        return len(idle)

    async def dispose_all(self) -> int:
        agents = list(self._agents.items())
        self._agents.clear()
        for channel_id, agent in agents:
            try:
                await agent.dispose()
            except Exception as e:
                logger.warning(f"Failed to dispose agent {channel_id}: {e}", exc_info=True)
        return len(agents)


_registry: Optional[AgentRegistry] = None


def get_agent_registry() -> AgentRegistry:
    """Get or create the process-wide registry."""
    global _registry
    if _registry is None:
        _registry = AgentRegistry()
    return _registry
