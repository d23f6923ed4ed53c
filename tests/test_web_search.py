"""Tests for the optional web search client."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, List

import pytest

pytest.importorskip("aiohttp")

import aiohttp

from depresolver.registry.search import WebSearchClient


class _JsonResponse:
    """Response stub returning a decoded JSON value."""

    def __init__(self, status: int = 200, data: Any = None):
        self.status = status
        self._data = data

    async def json(self, content_type=None):
        if isinstance(self._data, BaseException):
            raise self._data
        return self._data


class _SearchSession:
    def __init__(self, item):
        self._item = item
        self.params: List[dict] = []

    def get(self, url, params=None, **kwargs):
        self.params.append(params)
        item = self._item

        @asynccontextmanager
        async def _ctx():
            if isinstance(item, BaseException):
                raise item
            yield item

        return _ctx()

    async def close(self):
        pass


def _search(item, query="nose python package deprecated", max_results=5):
    session = _SearchSession(item)
    client = WebSearchClient("key", "engine", session=session)
    return asyncio.run(client.search(query, max_results=max_results)), session


class TestWebSearchClient:
    """Tests for search outcomes."""

    def test_hits_limited_to_max_results(self):
        items = [{"title": f"t{i}", "link": f"https://e.com/{i}", "snippet": "s"} for i in range(8)]
        outcome, session = _search(_JsonResponse(200, {"items": items}), max_results=3)
        assert outcome.error is None
        assert [h.title for h in outcome.results] == ["t0", "t1", "t2"]
        assert outcome.total_results == 3
        assert session.params[0]["num"] == "3"

    def test_error_status_becomes_outcome_error(self):
        outcome, _ = _search(_JsonResponse(429, {}))
        assert outcome.error == "Search API error: 429"
        assert outcome.results == []

    def test_transport_error_becomes_outcome_error(self):
        outcome, _ = _search(aiohttp.ClientConnectionError("boom"))
        assert outcome.error.startswith("Search request failed")

    @pytest.mark.parametrize("data", [[], "x", None])
    def test_non_object_body_becomes_outcome_error(self, data):
        outcome, _ = _search(_JsonResponse(200, data))
        assert outcome.error == "Search API returned an unexpected response"
        assert outcome.results == []

    def test_malformed_items_skipped(self):
        data = {"items": ["junk", {"title": "ok", "link": "https://e.com", "snippet": ""}]}
        outcome, _ = _search(_JsonResponse(200, data))
        assert [h.title for h in outcome.results] == ["ok"]

    def test_items_of_wrong_type_yield_no_hits(self):
        outcome, _ = _search(_JsonResponse(200, {"items": "nope"}))
        assert outcome.error is None
        assert outcome.results == []
