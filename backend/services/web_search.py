"""
Chalkboard Web Search - Tavily search provider

Backs the ``web_search`` tool. Every outcome, including transport failures,
is returned as a Result so the model always gets a tool response.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from config import RuntimeConfig, runtime_config
from errors.result import Err, Ok, Result

logger = logging.getLogger(__name__)

SEARCH_UNAVAILABLE = "Web search is not available. API key not configured."
SEARCH_EXCEPTION = "An exception occurred during the search."


class TavilySearchProvider:
    """Web search through the Tavily HTTP API."""

    def __init__(
        self,
        api_key: str,
        url: str = "https://api.tavily.com/search",
        search_depth: str = "advanced",
        max_results: int = 5,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_key: Tavily API key (empty disables search)
            url: Search endpoint
            search_depth: 'basic' or 'advanced'
            max_results: Result count requested per query
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.api_key = api_key
        self.url = url
        self.search_depth = search_depth
        self.max_results = max_results
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: Optional[RuntimeConfig] = None) -> "TavilySearchProvider":
        config = config or runtime_config
        return cls(
            api_key=config.tavily_api_key,
            url=config.tavily_url,
            search_depth=config.search_depth,
            max_results=config.search_max_results,
            timeout=config.search_timeout_s,
        )

    def _payload(self, query: str) -> Dict[str, Any]:
        return {
            "query": query,
            "search_depth": self.search_depth,
            "max_results": self.max_results,
            "include_answer": True,
            "include_raw_content": False,
        }

    async def search(self, query: str) -> Result:
        """Run a search. Never raises.

        Returns:
            Ok(tavily response body) or Err(error payload)
        """
        if not self.api_key:
            logger.warning("Web search requested but TAVILY_API_KEY is not set")
            return Err({"error": SEARCH_UNAVAILABLE})

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=self._payload(query), headers=headers)

            if not response.is_success:
                logger.warning(f"Tavily search failed with status {response.status_code}")
                return Err({
                    "error": f"Search failed with status: {response.status_code}",
                    "details": response.text,
                })

            data = response.json()
            logger.info(f"Tavily returned {len(data.get('results', []))} results for: {query[:60]}")
            return Ok(data)
        except Exception as e:
            logger.error(f"Tavily search exception: {e}", exc_info=True)
            return Err({"error": SEARCH_EXCEPTION, "message": str(e)})
