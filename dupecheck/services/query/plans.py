"""Plan configuration.

A configuration maps a PASS type name to the plans executed for resources of
that type. Each plan is either a template:

    {"keys": ["doi"], "q": "{{ scheme }}://{{ host_and_port }}/{{ index }}/_search?q=..."}

or a combination of plans:

    {"op": "or", "plans": [<plan>, <plan>, ...]}
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

from dupecheck.config import get_settings

from .builder import PlanBuilder
from .errors import PlanSyntaxError
from .plan import CompositePlan, Op, Plan
from .search import SearchClient

_SEARCH = "{{ scheme }}://{{ host_and_port }}/{{ index }}/_search?default_operator=AND&size={{ size }}&q="


def _term(field: str, key: str) -> str:
    return f"{field}:%22{{{{ bindings['{key}'][0] | urlqueryesc }}}}%22"


def _query(*terms: str) -> str:
    return _SEARCH + "@type:{{ bindings['@type'][0] }}+" + "+".join(terms)


DEFAULT_PLAN_CONFIG: Dict[str, List[Dict[str, Any]]] = {
    "Publication": [
        {
            "op": "or",
            "plans": [
                {"keys": ["@type", "doi"], "q": _query(_term("doi", "doi"))},
                {"keys": ["@type", "pmid"], "q": _query(_term("pmid", "pmid"))},
                {"keys": ["@type", "title"], "q": _query(_term("title", "title"))},
            ],
        }
    ],
    "Journal": [
        {"keys": ["@type", "journalName", "nlmta"], "q": _query(_term("journalName", "journalName"), _term("nlmta", "nlmta"))},
    ],
    "Grant": [
        {"keys": ["@type", "awardNumber"], "q": _query(_term("awardNumber", "awardNumber"))},
    ],
    "Funder": [
        {"keys": ["@type", "localKey"], "q": _query(_term("localKey", "localKey"))},
    ],
    "User": [
        {"keys": ["@type", "email"], "q": _query(_term("email", "email"))},
    ],
    "RepositoryCopy": [
        {"keys": ["@type", "accessUrl"], "q": _query(_term("accessUrl", "accessUrl"))},
    ],
}


def build_plan(spec: Mapping[str, Any], search: Optional[SearchClient] = None) -> Plan:
    if "op" in spec:
        children = [build_plan(child, search) for child in spec.get("plans") or []]
        try:
            op = Op(str(spec["op"]).lower())
        except ValueError as exc:
            raise PlanSyntaxError(f"query: unknown plan operator '{spec['op']}'") from exc
        if not children:
            raise PlanSyntaxError(f"query: '{op.value}' plan has no child plans")
        return CompositePlan(op, children)

    keys = spec.get("keys")
    if not isinstance(keys, list) or "q" not in spec:
        raise PlanSyntaxError(f"query: a plan requires 'keys' and 'q': {dict(spec)!r}")
    builder = PlanBuilder(search)
    for key in keys:
        builder.add_key(str(key))
    return builder.add_query(str(spec["q"])).build()


def load_plans(
    config: Optional[Mapping[str, List[Mapping[str, Any]]]] = None,
    search: Optional[SearchClient] = None,
) -> Dict[str, List[Plan]]:
    """Compile a plan configuration, answering PASS type name -> plans."""
    if config is None:
        config = DEFAULT_PLAN_CONFIG
    if search is None:
        search = SearchClient.from_settings(get_settings())
    return {type_name: [build_plan(spec, search) for spec in specs] for type_name, specs in config.items()}


def load_plans_file(path: str, search: Optional[SearchClient] = None) -> Dict[str, List[Plan]]:
    with open(path, "r", encoding="utf-8") as f:
        config = json.load(f)
    if not isinstance(config, dict):
        raise PlanSyntaxError(f"query: plan configuration {path} must be a JSON object")
    return load_plans(config, search)
