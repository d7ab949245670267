"""Retrieves repository resources as `Container`s.

Resources are requested as expanded JSON-LD, asking the repository to include
containment triples, and basic auth is sent with every request.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import httpx

from dupecheck.config import DEFAULT_PASS_NAMESPACE
from dupecheck.models.container import LDP_CONTAINS, Container

_PREFER = 'return=representation; include="http://www.w3.org/ns/ldp#PreferContainment"'


class RetrieverError(Exception):
    def __init__(self, uri: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"retriever: error retrieving {uri}: {message}")
        self.uri = uri
        self.status_code = status_code


def _values(objects: Any) -> List[str]:
    out: List[str] = []
    for obj in objects if isinstance(objects, list) else [objects]:
        if isinstance(obj, dict):
            if "@id" in obj:
                out.append(str(obj["@id"]))
            elif "@value" in obj:
                out.append(str(obj["@value"]))
        elif obj is not None:
            out.append(str(obj))
    return out


def parse_jsonld(uri: str, payload: Any, *, namespace: str = DEFAULT_PASS_NAMESPACE) -> Container:
    """Build a Container from the expanded JSON-LD node describing `uri`."""
    nodes = payload if isinstance(payload, list) else payload.get("@graph", [payload])
    node: Optional[Dict[str, Any]] = None
    for candidate in nodes:
        if isinstance(candidate, dict) and candidate.get("@id") == uri:
            node = candidate
            break
    if node is None:
        raise ValueError(f"no node with @id {uri}")

    types = _values(node.get("@type", []))
    contains = _values(node.get(LDP_CONTAINS, []))
    properties = {k: _values(v) for k, v in node.items() if not k.startswith("@") and k != LDP_CONTAINS}
    return Container(uri=uri, types=types, properties=properties, contains=contains, namespace=namespace)


class LdpRetriever:
    def __init__(
        self,
        *,
        user: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 600.0,
        namespace: str = DEFAULT_PASS_NAMESPACE,
        client: Optional[httpx.Client] = None,
    ) -> None:
        auth = httpx.BasicAuth(user, password or "") if user else None
        self.namespace = namespace
        self._client = client or httpx.Client(timeout=timeout, auth=auth, follow_redirects=True)
        self._headers = {"Accept": "application/ld+json", "Prefer": _PREFER}

    @classmethod
    def from_settings(cls, settings) -> "LdpRetriever":
        return cls(
            user=settings.fcrepo_user,
            password=settings.fcrepo_password,
            timeout=settings.http_timeout,
            namespace=settings.pass_namespace,
        )

    def get(self, uri: str) -> Container:
        try:
            resp = self._client.get(uri, headers=self._headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RetrieverError(uri, str(exc)) from exc
        if not resp.is_success:
            raise RetrieverError(
                uri, f"unexpected status code '{resp.status_code}' ({resp.reason_phrase})", resp.status_code
            )
        try:
            return parse_jsonld(uri, json.loads(resp.text), namespace=self.namespace)
        except (ValueError, AttributeError, TypeError) as exc:
            raise RetrieverError(uri, f"unable to parse body: {exc}") from exc

    def close(self) -> None:
        self._client.close()
