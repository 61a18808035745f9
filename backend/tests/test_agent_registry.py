"""
Tests for the AgentRegistry and its idle sweep.
"""

import asyncio

from agents.orchestrator import SessionOrchestrator
from config import RuntimeConfig
from services.agent_registry import AgentRegistry, get_agent_registry

from conftest import FakeChannel, FakeSearchProvider


def _agent(cid: str, last_interaction: float) -> SessionOrchestrator:
    config = RuntimeConfig()
    config.gemini_api_key = "k"
    return SessionOrchestrator(
        FakeChannel(cid=cid),
        config=config,
        tool_provider=FakeSearchProvider(),
        clock=lambda: last_interaction,
    )


class TestRegistry:
    def test_register_and_get(self):
        registry = AgentRegistry()
        agent = _agent("messaging:a", 0.0)

        assert registry.register(agent) is None
        assert registry.get("messaging:a") is agent
        assert "messaging:a" in registry
        assert len(registry) == 1

    def test_register_returns_replaced_agent(self):
        registry = AgentRegistry()
        old = _agent("messaging:a", 0.0)
        new = _agent("messaging:a", 0.0)
        registry.register(old)

        assert registry.register(new) is old
        assert registry.get("messaging:a") is new

    def test_unregister_only_removes_matching_agent(self):
        registry = AgentRegistry()
        old = _agent("messaging:a", 0.0)
        new = _agent("messaging:a", 0.0)
        registry.register(old)
        registry.register(new)

        assert registry.unregister("messaging:a", old) is False
        assert registry.get("messaging:a") is new
        assert registry.unregister("messaging:a", new) is True
        assert len(registry) == 0

    def test_singleton(self):
        assert get_agent_registry() is get_agent_registry()


class TestIdleSweep:
    def test_dispose_idle(self):
        registry = AgentRegistry()
        stale = _agent("messaging:stale", 100.0)
        fresh = _agent("messaging:fresh", 1900.0)
        registry.register(stale)
        registry.register(fresh)

        disposed = asyncio.run(registry.dispose_idle(max_idle_s=1800.0, now=2000.0))

        assert disposed == 1
        assert registry.channel_ids() == ["messaging:fresh"]
        assert stale.channel.disconnected is True
        assert fresh.channel.disconnected is False

    def test_dispose_all(self):
        registry = AgentRegistry()
        agents = [_agent("messaging:a", 0.0), _agent("messaging:b", 0.0)]
        for agent in agents:
            registry.register(agent)

        assert asyncio.run(registry.dispose_all()) == 2
        assert len(registry) == 0
        assert all(agent.channel.disconnected for agent in agents)
