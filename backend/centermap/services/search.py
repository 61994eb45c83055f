"""Web search source: DuckDuckGo Instant Answer API.

The Instant Answer API is free and keyless. It returns an abstract for the
query (when it recognizes the topic) and a list of related topics; both are
turned into plain text snippets for the extraction prompt.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from centermap.errors import UpstreamError

logger = logging.getLogger(__name__)

MAX_RELATED_TOPICS = 3


def _iter_topic_texts(topics: list[Any]):
    """Yield topic texts, flattening grouped topics ({"Name", "Topics": [...]})."""
    for topic in topics:
        if not isinstance(topic, dict):
            continue
        if isinstance(topic.get("Topics"), list):
            yield from _iter_topic_texts(topic["Topics"])
            continue
        text = (topic.get("Text") or "").strip()
        if text:
            yield text


def snippets_from_answer(data: dict[str, Any]) -> list[str]:
    """Abstract first (if any), then up to three related-topic texts."""
    snippets: list[str] = []
    abstract = (data.get("AbstractText") or data.get("Abstract") or "").strip()
    if abstract:
        snippets.append(abstract)

    related = data.get("RelatedTopics") or []
    if isinstance(related, list):
        for i, text in enumerate(_iter_topic_texts(related)):
            if i >= MAX_RELATED_TOPICS:
                break
            snippets.append(text)
    return snippets


class SearchClient:
    """Thin async client for the DuckDuckGo Instant Answer endpoint."""

    def __init__(
        self,
        base_url: str = "https://api.duckduckgo.com/",
        user_agent: str = "TrainingCenterMapper/1.0",
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": user_agent},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def search(self, query: str) -> list[str]:
        """Run one query and return its snippets.

        Raises UpstreamError on transport failure, non-2xx status or a body
        that is not JSON.
        """
        try:
            response = await self._client.get(
                self._base_url,
                params={
                    "q": query,
                    "format": "json",
                    "no_html": "1",
                    "skip_disambig": "1",
                },
            )
            response.raise_for_status()
            # DuckDuckGo serves JSON as application/x-javascript
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(
                "DuckDuckGo", f"DuckDuckGo returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError("DuckDuckGo", f"Cannot reach DuckDuckGo: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError("DuckDuckGo", f"DuckDuckGo returned invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            return []
        return snippets_from_answer(data)
