"""Optional web search used to gather deprecation and alternatives evidence."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

from depresolver.common.logging_utils import safe_url
from depresolver.constants import Constants
from depresolver.models import SearchHit, SearchOutcome

logger = logging.getLogger(__name__)


class WebSearchClient:
    """Google Custom Search client.

    Never raises for search failures: the outcome carries the error instead,
    so a broken search never costs a package its research result.
    """

    def __init__(
        self,
        api_key: str,
        engine_id: str,
        base_url: str = Constants.SEARCH_URL_GOOGLE,
        timeout: int = Constants.REQUEST_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self._api_key = api_key
        self._engine_id = engine_id
        self._base_url = base_url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def start(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True

    async def stop(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def search(self, query: str, max_results: int = Constants.SEARCH_MAX_RESULTS) -> SearchOutcome:
        """Run one query and return at most ``max_results`` hits."""
        if self._session is None:
            await self.start()
        assert self._session is not None

        params = {
            "key": self._api_key,
            "cx": self._engine_id,
            "q": query,
            "num": str(min(max_results, 10)),
        }
        try:
            async with self._session.get(self._base_url, params=params) as response:
                if response.status != 200:
                    return SearchOutcome(error=f"Search API error: {response.status}")
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.warning("Web search failed for %r via %s: %s", query, safe_url(self._base_url), exc)
            return SearchOutcome(error=f"Search request failed: {exc}")

        if not isinstance(data, dict):
            return SearchOutcome(error="Search API returned an unexpected response")
        items = data.get("items")
        if not isinstance(items, list):
            items = []
        hits = [
            SearchHit(
                title=item.get("title", ""),
                url=item.get("link", ""),
                snippet=item.get("snippet", ""),
            )
            for item in items if isinstance(item, dict)
        ][:max_results]
        return SearchOutcome(results=hits, total_results=len(hits))
