import abc
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..types.kind import EntityKind


class EntityStore(abc.ABC):
    """Read access to the four entity kinds.

    A missing entity is reported as ``None`` / an empty list, never raised.
    Persistence failures surface as ``StoreUnavailable``.
    """

    @abc.abstractmethod
    def get(self, kind: EntityKind, entity_id: int) -> Optional[Any]: ...
    @abc.abstractmethod
    def get_many(self, kind: EntityKind, entity_ids: Iterable[int]) -> Dict[int, Any]: ...
    @abc.abstractmethod
    def matching_text(self, kind: EntityKind, pattern: str, limit: int = 50) -> List[Any]: ...
    @abc.abstractmethod
    def matching_exact(self, kind: EntityKind, code: str, limit: int = 50) -> List[Any]: ...

    # -- Display enrichment ------------------------------------------------

    def observations_for(self, kind: EntityKind, entity_id: int, limit: int = 20) -> List[Any]:
        """Notes attached to an entity, newest first.

        Default implementation returns an empty list so that stores without
        observation support continue to work.
        """
        return []

    def locations_mentioning(self, text: str, category: Optional[str] = None,
                             limit: int = 50) -> List[Any]:
        """Locations whose notes mention ``text``. Empty by default."""
        return []


class RelationStore(abc.ABC):
    """Pairwise relation tables keyed by the unordered kind pair."""

    @abc.abstractmethod
    def add(self, kind_a: EntityKind, id_a: int, kind_b: EntityKind, id_b: int,
            label: Optional[str] = None) -> int: ...
    @abc.abstractmethod
    def remove(self, kind_a: EntityKind, id_a: int, kind_b: EntityKind, id_b: int) -> bool: ...
    @abc.abstractmethod
    def neighbors_of(self, kind: EntityKind, entity_id: int,
                     of_kind: EntityKind) -> List[Tuple[int, Optional[str]]]: ...

    def has_neighbors(self, kind: EntityKind, entity_id: int, of_kind: EntityKind) -> bool:
        """Whether any ``of_kind`` neighbour still exists; orphaned rows do not count."""
        ids = [nid for nid, _ in self.neighbors_of(kind, entity_id, of_kind)]
        if not ids:
            return False
        if isinstance(self, EntityStore):
            return bool(self.get_many(of_kind, ids))
        return True
