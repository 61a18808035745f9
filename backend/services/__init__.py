"""
Chalkboard Services - external integrations and process-wide state.

- llm_client: Gemini conversation over the OpenAI-compatible API
- web_search: Tavily search provider behind the web_search tool
- agent_registry: Live agents keyed by channel, with idle sweep
"""

from .agent_registry import AgentRegistry, get_agent_registry
from .llm_client import OpenAIModelSession
from .web_search import TavilySearchProvider

__all__ = ["AgentRegistry", "get_agent_registry", "OpenAIModelSession", "TavilySearchProvider"]
