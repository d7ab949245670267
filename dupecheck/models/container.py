from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from dupecheck.config import DEFAULT_PASS_NAMESPACE

LDP_CONTAINS = "http://www.w3.org/ns/ldp#contains"


def _freeze(properties: Optional[Mapping[str, Iterable[str]]]) -> Mapping[str, Tuple[str, ...]]:
    frozen: Dict[str, Tuple[str, ...]] = {}
    for k, v in (properties or {}).items():
        frozen[k] = tuple(v)
    return MappingProxyType(frozen)


@dataclass(frozen=True)
class Container:
    """Immutable snapshot of one repository node.

    `properties` maps full property URIs to their ordered values; `contains`
    lists the URIs of child resources in repository order.
    """

    uri: str
    types: Tuple[str, ...] = ()
    properties: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    contains: Tuple[str, ...] = ()
    namespace: str = DEFAULT_PASS_NAMESPACE

    def __post_init__(self) -> None:
        object.__setattr__(self, "types", tuple(self.types))
        object.__setattr__(self, "contains", tuple(self.contains))
        object.__setattr__(self, "properties", _freeze(self.properties))

    @property
    def pass_type(self) -> Optional[str]:
        """Local name of the first domain-namespaced type, or None."""
        for t in self.types:
            if t.startswith(self.namespace):
                return t[len(self.namespace):]
        return None

    @property
    def is_pass_resource(self) -> bool:
        return self.pass_type is not None

    def pass_properties(self) -> Dict[str, Tuple[str, ...]]:
        """Properties restricted to the domain namespace."""
        return {k: v for k, v in self.properties.items() if k.startswith(self.namespace)}

    def __hash__(self) -> int:
        return hash(self.uri)

    def __str__(self) -> str:
        return f"Container({self.uri}, type={self.pass_type}, children={len(self.contains)})"
