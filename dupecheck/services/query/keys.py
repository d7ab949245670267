from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

from dupecheck.models.container import Container

from .errors import MissingKeysError

TYPE_KEY = "@type"


@dataclass(frozen=True)
class KvPair:
    """Associates a named key with a value; used when rendering a template."""

    key: str
    value: str


def extract_keys(container: Container, keys: Sequence[str]) -> List[KvPair]:
    """Bind each required key to the values of the container's matching properties.

    A property matches a key when the property URI ends with the key, so keys
    are local names ("title") and properties are namespaced
    ("http://oapass.org/ns/pass#title"). Every value of a matching property
    yields one pair. The special key "@type" binds the local name of the
    container's domain type.

    Pairs are returned grouped in the order of `keys`. Raises MissingKeysError
    naming every key that could not be bound.
    """
    extracted: Dict[str, List[KvPair]] = {}
    properties = container.pass_properties()

    for key in keys:
        if key == TYPE_KEY:
            # RDF type isn't a PASS property; it is read from the container's types
            pass_type = container.pass_type
            if pass_type:
                extracted[key] = [KvPair(key, pass_type)]
            continue
        for prop, values in properties.items():
            if not prop.endswith(key):
                continue
            for value in values:
                extracted.setdefault(key, []).append(KvPair(key, value))

    missing = [k for k in keys if k not in extracted]
    if missing:
        raise MissingKeysError(missing, container.uri)

    result: List[KvPair] = []
    for key in dict.fromkeys(keys):
        result.extend(extracted[key])
    return result
