from __future__ import annotations

from typing import List, Optional, Sequence


class QueryError(Exception):
    """Base class for errors raised while building or executing a query plan."""


class MissingKeysError(QueryError):
    """A resource lacks attributes required to formulate a query.

    This is an expected outcome: the plan is skipped for that resource.
    """

    def __init__(self, keys: Sequence[str], uri: str = "") -> None:
        self.keys: List[str] = list(keys)
        self.uri = uri
        msg = "query: missing required key(s): " + ",".join(self.keys)
        if uri:
            msg += f" (resource {uri})"
        super().__init__(msg)


class PlanSyntaxError(QueryError):
    pass


class SearchError(QueryError):
    """Error performing a search against the index."""

    def __init__(
        self,
        query: str,
        message: str,
        *,
        status_code: Optional[int] = None,
        reason: str = "",
        body: str = "",
    ) -> None:
        self.query = query
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"query: error performing search: {message}")


class SearchDecodeError(QueryError):
    def __init__(self, query: str, message: str) -> None:
        self.query = query
        super().__init__(f"query: unable to decode body of request '{query}': {message}")


class IllegalStateError(RuntimeError):
    """A plan builder was used after it was built."""
