"""Provenance chains: how a traversal result was reached from its seed."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..types.kind import EntityKind


@dataclass(frozen=True)
class Hop:
    kind: EntityKind
    id: int

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "id": self.id}


@dataclass(frozen=True)
class Provenance:
    """Immutable linked chain ending at ``hop``.

    A chain without a parent is a seed. Extending a chain never mutates the
    parent, so sibling results share their common prefix.
    """
    hop: Hop
    parent: Optional["Provenance"] = None
    label: Optional[str] = None  # relation label of the edge into ``hop``

    @classmethod
    def root(cls, kind: EntityKind, entity_id: int) -> "Provenance":
        return cls(Hop(kind, entity_id))

    def extend(self, kind: EntityKind, entity_id: int, label: Optional[str] = None) -> "Provenance":
        return Provenance(Hop(kind, entity_id), self, label)

    @property
    def depth(self) -> int:
        depth, node = 0, self.parent
        while node is not None:
            depth += 1
            node = node.parent
        return depth

    @property
    def seed(self) -> Hop:
        node = self
        while node.parent is not None:
            node = node.parent
        return node.hop

    def path(self) -> List[Hop]:
        """Hops from the seed to this result, both included."""
        hops = []
        node: Optional[Provenance] = self
        while node is not None:
            hops.append(node.hop)
            node = node.parent
        hops.reverse()
        return hops

    def via(self) -> List[Hop]:
        """Intermediate hops only, excluding the seed and the result."""
        return self.path()[1:-1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seed": self.seed.to_dict(),
            "depth": self.depth,
            "via": [h.to_dict() for h in self.via()],
            "path": [str(h) for h in self.path()],
            "label": self.label,
        }
