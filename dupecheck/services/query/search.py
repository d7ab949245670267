"""Index search client.

Queries are rendered by a plan into a complete request URL (including the
query string) and issued as a GET with no body. Responses are expected in the
Elasticsearch shape:

{"hits": {"total": int, "hits": [{"_source": {"@id": str}}, ...]}}
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import httpx

from .errors import SearchDecodeError, SearchError

logger = logging.getLogger(__name__)


@dataclass
class Match:
    """Outcome of executing a plan against one resource."""

    query_url: str
    hit_count: int = 0
    matching_uris: List[str] = field(default_factory=list)
    # provided by the plan, not the index
    pass_uri: str = ""
    pass_type: str = ""

    @property
    def is_duplicate(self) -> bool:
        return self.hit_count > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pass_uri": self.pass_uri,
            "pass_type": self.pass_type,
            "query_url": self.query_url,
            "hit_count": self.hit_count,
            "matching_uris": list(self.matching_uris),
        }


def _total(hits: Dict[str, Any]) -> int:
    if not isinstance(hits, dict):
        raise ValueError(f"invalid hits {hits!r}")
    total = hits.get("total", 0)
    # Elasticsearch 7+ reports {"value": n, "relation": "eq"}
    if isinstance(total, dict):
        total = total.get("value", 0)
    if isinstance(total, bool) or not isinstance(total, int) or total < 0:
        raise ValueError(f"invalid hit total {total!r}")
    return total


def parse_hits(query: str, body: str) -> Match:
    try:
        payload = json.loads(body)
        hits = payload["hits"]
        total = _total(hits)
        match = Match(query_url=query, hit_count=total)
        if total == 0:
            return match
        for hit in hits.get("hits") or []:
            match.matching_uris.append(hit["_source"]["@id"])
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise SearchDecodeError(query, str(exc)) from exc
    return match


class SearchClient:
    """Executes rendered queries against the index.

    The scheme, host and index offered to templates are derived from
    `base_uri` (e.g. http://elasticsearch:9200/pass/_search).
    """

    def __init__(
        self,
        base_uri: str = "http://elasticsearch:9200/pass/_search",
        *,
        max_result_size: int = 1000,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        parts = urlsplit(base_uri)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"invalid index search uri '{base_uri}'")
        self.base_uri = base_uri
        self.scheme = parts.scheme
        self.host_and_port = parts.netloc
        self.index = parts.path.strip("/").split("/")[0] if parts.path.strip("/") else ""
        self.max_result_size = max_result_size
        self._client = client or httpx.Client(timeout=timeout, headers={"Accept": "application/json"})

    @classmethod
    def from_settings(cls, settings) -> "SearchClient":
        return cls(
            settings.index_search_base_uri,
            max_result_size=settings.index_search_max_result_size,
            timeout=settings.http_timeout,
        )

    def render_context(self) -> Dict[str, Any]:
        return {
            "scheme": self.scheme,
            "host_and_port": self.host_and_port,
            "index": self.index,
            "size": self.max_result_size,
        }

    def perform(self, query: str) -> Match:
        """Execute the query URL and return the hit count and matching ids."""
        try:
            resp = self._client.get(query)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise SearchError(query, f"'{query}' failed: {exc}") from exc

        if resp.status_code != 200:
            raise SearchError(
                query,
                f"'{query}' returned unexpected status code '{resp.status_code}' ({resp.reason_phrase})\n{resp.text}",
                status_code=resp.status_code,
                reason=resp.reason_phrase,
                body=resp.text,
            )

        match = parse_hits(query, resp.text)
        logger.debug("executed query %s: %d hit(s)", query, match.hit_count)
        return match

    def close(self) -> None:
        self._client.close()
