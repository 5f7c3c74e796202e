"""
Database layer for casegraph.

Provides:
- SQLAlchemy models for the four entity kinds, observations and relation tables
- Relation table registry keyed by unordered kind pair
- Storage contracts and the SQLAlchemy-backed store
- CLI tool for database management
"""

from .models import (
    Base,
    Person,
    Vehicle,
    Property,
    Location,
    Observation,
    ENTITY_MODELS,
)
from .relations import RelationTable, RELATION_TABLES, table_for, all_tables
from .engine import SQLAlchemyStore
from .store import EntityStore, RelationStore

__all__ = [
    # Base
    "Base",
    # Entity models
    "Person",
    "Vehicle",
    "Property",
    "Location",
    "Observation",
    "ENTITY_MODELS",
    # Relation registry
    "RelationTable",
    "RELATION_TABLES",
    "table_for",
    "all_tables",
    # Storage
    "SQLAlchemyStore",
    "EntityStore",
    "RelationStore",
]
