"""Exception types shared by the store, graph and web layers."""

from typing import Optional


class CaseGraphError(Exception):
    """Base exception for casegraph errors."""
    pass


class NotFound(CaseGraphError):
    """Entity or relation absent. Callers treat it as an empty result."""
    pass


class EntityNotFound(NotFound):
    """Raised when an operation needs an entity that does not exist."""

    def __init__(self, kind, entity_id: int):
        self.kind = kind
        self.entity_id = entity_id
        tag = getattr(kind, "value", kind)
        super().__init__(f"{tag} {entity_id} not found")


class OrphanedRelation(NotFound):
    """A relation row whose endpoint entity no longer exists.

    Only ever logged; traversal skips the row.
    """

    def __init__(self, kind, entity_id: int, neighbor_kind, neighbor_id: int):
        self.kind = kind
        self.entity_id = entity_id
        self.neighbor_kind = neighbor_kind
        self.neighbor_id = neighbor_id
        super().__init__(
            f"relation {getattr(kind, 'value', kind)}:{entity_id} -> "
            f"{getattr(neighbor_kind, 'value', neighbor_kind)}:{neighbor_id} "
            "points at a missing entity"
        )


class InvalidRelation(CaseGraphError):
    """Relation rejected before any write (self relation, bad label, bad pair)."""
    pass


class UnsupportedRelationKind(InvalidRelation):
    """Kind tag that does not name one of the four entity kinds."""
    pass


class InvalidQuery(CaseGraphError):
    """Blank search text."""
    pass


class StoreUnavailable(CaseGraphError):
    """The backing database could not be reached or failed mid-query."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
