from .ids import MAX_ENTITY_ID, is_entity_id, parse_entity_id
from .kind import EntityKind, KIND_ALIASES, normalize_kind, normalize_kinds

__all__ = [
    "EntityKind",
    "KIND_ALIASES",
    "MAX_ENTITY_ID",
    "is_entity_id",
    "normalize_kind",
    "normalize_kinds",
    "parse_entity_id",
]
