"""
Relation Graph API.

Thin layer over the relation store that accepts loose kind spellings,
reports the canonical pair it used, and resolves neighbour ids to entities.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ..errors import OrphanedRelation
from ..types.kind import EntityKind, normalize_kind


KindLike = Union[str, EntityKind]


@dataclass
class RelationOutcome:
    success: bool
    kinds: Tuple[EntityKind, EntityKind]
    relation_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "kinds": [k.value for k in self.kinds],
            "relation_id": self.relation_id,
        }


@dataclass
class RelatedEntity:
    kind: EntityKind
    entity: Any
    label: Optional[str] = None

    @property
    def id(self) -> int:
        return self.entity.id

    def to_dict(self) -> Dict[str, Any]:
        data = self.entity.to_dict()
        data["relation_label"] = self.label
        return data


class RelationGraph:
    """Create, delete and read relations between any two entity kinds."""

    def __init__(self, store, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def normalize_kind(value: KindLike) -> EntityKind:
        return normalize_kind(value)

    def create_relation(self, kind1: KindLike, id1: int, kind2: KindLike, id2: int,
                        label: Optional[str] = None) -> RelationOutcome:
        k1, k2 = normalize_kind(kind1), normalize_kind(kind2)
        relation_id = self.store.add(k1, int(id1), k2, int(id2), label=label or None)
        return RelationOutcome(True, (k1, k2), relation_id)

    def delete_relation(self, kind1: KindLike, id1: int, kind2: KindLike, id2: int) -> RelationOutcome:
        k1, k2 = normalize_kind(kind1), normalize_kind(kind2)
        removed = self.store.remove(k1, int(id1), k2, int(id2))
        if not removed:
            self.logger.debug(f"No relation between {k1.value}:{id1} and {k2.value}:{id2} to remove")
        return RelationOutcome(removed, (k1, k2))

    def neighbor_ids(self, kind: KindLike, entity_id: int,
                     of_kind: KindLike) -> List[Tuple[int, Optional[str]]]:
        return self.store.neighbors_of(normalize_kind(kind), int(entity_id), normalize_kind(of_kind))

    def related(self, kind: KindLike, entity_id: int, of_kind: KindLike) -> List[RelatedEntity]:
        """Neighbours of one kind, resolved to entities.

        Rows pointing at entities that no longer exist are skipped.
        """
        kind, of_kind = normalize_kind(kind), normalize_kind(of_kind)
        pairs = self.neighbor_ids(kind, entity_id, of_kind)
        if not pairs:
            return []
        found = self.store.get_many(of_kind, [nid for nid, _ in pairs])
        related = []
        for neighbor_id, label in pairs:
            entity = found.get(neighbor_id)
            if entity is None:
                self.logger.debug(str(OrphanedRelation(kind, entity_id, of_kind, neighbor_id)))
                continue
            related.append(RelatedEntity(of_kind, entity, label))
        return related

    def neighbors(self, kind: KindLike, entity_id: int,
                  kinds: Optional[Iterable[EntityKind]] = None) -> Dict[EntityKind, List[RelatedEntity]]:
        """Depth-1 neighbours grouped by kind (all four kinds unless ``kinds`` is given)."""
        kind = normalize_kind(kind)
        wanted = list(kinds) if kinds is not None else list(EntityKind)
        return {of_kind: self.related(kind, entity_id, of_kind) for of_kind in wanted}

    # -------- Entity passthroughs --------
    def get_entity(self, kind: KindLike, entity_id: int):
        return self.store.get(normalize_kind(kind), int(entity_id))

    def has_location(self, kind: KindLike, entity_id: int) -> bool:
        return self.store.has_neighbors(normalize_kind(kind), int(entity_id), EntityKind.LOCATION)

    def observations(self, kind: KindLike, entity_id: int, limit: int = 20) -> list:
        return self.store.observations_for(normalize_kind(kind), int(entity_id), limit=limit)

    def locations_mentioning(self, text: str, category: Optional[str] = None) -> list:
        return self.store.locations_mentioning(text, category=category)
