from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, List, Sequence, Tuple
from urllib.parse import quote

import jinja2

from dupecheck.models.container import Container

from .errors import MissingKeysError, QueryError
from .keys import KvPair, extract_keys
from .search import Match, SearchClient

logger = logging.getLogger(__name__)

MatchHandler = Callable[[Match], None]


def _inc(i: int) -> int:
    return i + 1


def _dec(i: int) -> int:
    return i - 1


def _urlqueryesc(value: str) -> str:
    # escape a single URL path segment
    return quote(str(value), safe="$&+:=@")


def template_environment() -> jinja2.Environment:
    env = jinja2.Environment(undefined=jinja2.StrictUndefined, autoescape=False, keep_trailing_newline=False)
    helpers = {"inc": _inc, "dec": _dec, "urlqueryesc": _urlqueryesc}
    env.filters.update(helpers)
    env.globals.update(helpers)
    return env


class Plan:
    """A compiled, reusable unit of query logic executable against a resource."""

    def execute(self, container: Container, handler: MatchHandler) -> None:
        """Run the plan against `container`, passing the resulting Match to `handler`.

        Raises MissingKeysError when the container lacks the attributes the
        plan needs, and QueryError when the query cannot be performed.
        Exceptions raised by `handler` propagate.
        """
        raise NotImplementedError

    def children(self) -> List["Plan"]:
        return []


class TemplatePlan(Plan):
    """An index query template and the keys it requires for rendering."""

    def __init__(self, query: str, template: jinja2.Template, keys: Sequence[str], search: SearchClient) -> None:
        self._query = query
        self._template = template
        self._keys: Tuple[str, ...] = tuple(keys)
        self._search = search

    @property
    def query(self) -> str:
        return self._query

    @property
    def keys(self) -> Tuple[str, ...]:
        return self._keys

    def render(self, kv_pairs: Sequence[KvPair]) -> str:
        """Parameterize the template with the key-value pairs, answering the query URL."""
        if not kv_pairs:
            raise QueryError(f"query: cannot render template, empty key-value pairs for {self}")
        bindings: Dict[str, List[str]] = {}
        for kvp in kv_pairs:
            bindings.setdefault(kvp.key, []).append(kvp.value)
        context = dict(self._search.render_context())
        context["kv_pairs"] = list(kv_pairs)
        context["bindings"] = bindings
        try:
            return self._template.render(**context).strip()
        except jinja2.TemplateError as exc:
            raise QueryError(f"query: error rendering template for {self}: {exc}") from exc

    def execute(self, container: Container, handler: MatchHandler) -> None:
        try:
            kv_pairs = extract_keys(container, self._keys)
        except MissingKeysError as exc:
            logger.info(
                "Skipping query evaluation for %s, resource is missing at least one key required to formulate the query: %s",
                container.uri,
                exc,
            )
            raise

        match = self._search.perform(self.render(kv_pairs))
        match.pass_uri = container.uri
        match.pass_type = container.pass_type or ""
        handler(match)

    def __repr__(self) -> str:
        return f"TemplatePlan(keys={list(self._keys)!r}, query={self._query!r})"


class Op(str, Enum):
    AND = "and"
    OR = "or"


class CompositePlan(Plan):
    """Combines child plans.

    OR runs children in order and delivers the first match with hits; children
    missing keys are skipped, and if none hit the last match is delivered.
    AND runs every child and delivers a single match holding the identifiers
    common to all of them.
    """

    def __init__(self, op: Op, plans: Sequence[Plan]) -> None:
        if not plans:
            raise ValueError("a composite plan requires at least one child plan")
        self.op = Op(op)
        self._plans: Tuple[Plan, ...] = tuple(plans)

    def children(self) -> List[Plan]:
        return list(self._plans)

    def execute(self, container: Container, handler: MatchHandler) -> None:
        if self.op is Op.OR:
            self._execute_or(container, handler)
        else:
            self._execute_and(container, handler)

    def _execute_or(self, container: Container, handler: MatchHandler) -> None:
        last = None
        missing: List[str] = []
        for plan in self._plans:
            matches: List[Match] = []
            try:
                plan.execute(container, matches.append)
            except MissingKeysError as exc:
                missing.extend(k for k in exc.keys if k not in missing)
                continue
            for m in matches:
                last = m
                if m.hit_count > 0:
                    handler(m)
                    return
        if last is None:
            raise MissingKeysError(missing, container.uri)
        handler(last)

    def _execute_and(self, container: Container, handler: MatchHandler) -> None:
        matches: List[Match] = []
        for plan in self._plans:
            plan.execute(container, matches.append)
        if not matches:
            return
        common = list(matches[0].matching_uris)
        for m in matches[1:]:
            others = set(m.matching_uris)
            common = [uri for uri in common if uri in others]
        handler(
            Match(
                query_url=" AND ".join(m.query_url for m in matches),
                hit_count=len(common),
                matching_uris=common,
                pass_uri=container.uri,
                pass_type=container.pass_type or "",
            )
        )

    def __repr__(self) -> str:
        return f"CompositePlan({self.op.value}, {list(self._plans)!r})"
