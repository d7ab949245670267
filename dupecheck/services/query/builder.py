from __future__ import annotations

from typing import List, Optional

import jinja2

from dupecheck.config import get_settings

from .errors import IllegalStateError, PlanSyntaxError
from .plan import TemplatePlan, template_environment
from .search import SearchClient

_env = template_environment()


class PlanBuilder:
    """Accumulates the keys and query text of a TemplatePlan.

    A builder is single use: once `build()` has been called any further use
    raises IllegalStateError.
    """

    def __init__(self, search: Optional[SearchClient] = None) -> None:
        self._search = search
        self._keys: List[str] = []
        self._query = ""
        self._built = False

    def _check_not_built(self, msg: str) -> None:
        if self._built:
            raise IllegalStateError(f"illegal state: {msg}: already built {self!r}")

    def add_key(self, key: str) -> "PlanBuilder":
        self._check_not_built(f"cannot append key '{key}' to existing keys '{','.join(self._keys)}'")
        self._keys.append(key)
        return self

    def add_query(self, query: str) -> "PlanBuilder":
        self._check_not_built(f"cannot overwrite existing query '{self._query}' with query '{query}'")
        if self._query:
            raise IllegalStateError(
                f"illegal state: cannot overwrite existing query '{self._query}' with query '{query}': {self!r}"
            )
        self._query = query
        return self

    def build(self) -> TemplatePlan:
        self._check_not_built("cannot build again")
        self._built = True

        if not self._keys:
            raise PlanSyntaxError(f"query: a plan requires at least one key: {self!r}")
        if not self._query:
            raise PlanSyntaxError(f"query: a plan requires a query: {self!r}")
        try:
            template = _env.from_string(self._query)
        except jinja2.TemplateSyntaxError as exc:
            raise PlanSyntaxError(f"query: unable to compile '{self._query}': {exc}") from exc

        search = self._search or SearchClient.from_settings(get_settings())
        return TemplatePlan(self._query, template, self._keys, search)

    def __repr__(self) -> str:
        return f"PlanBuilder(built={self._built}, keys={self._keys!r}, query={self._query!r})"
