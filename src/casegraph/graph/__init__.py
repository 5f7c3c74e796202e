"""Relation graph, search, traversal and map aggregation."""

from .provenance import Hop, Provenance
from .relation_graph import RelationGraph, RelationOutcome, RelatedEntity
from .search import SearchResolver, SearchResult, SearchMatch
from .traversal import (
    TraversalEngine,
    TraversalResult,
    EntityWithProvenance,
    LocationWithProvenance,
)
from .aggregator import LocationAggregator, MapPoint, has_coordinates

__all__ = [
    "Hop",
    "Provenance",
    "RelationGraph",
    "RelationOutcome",
    "RelatedEntity",
    "SearchResolver",
    "SearchResult",
    "SearchMatch",
    "TraversalEngine",
    "TraversalResult",
    "EntityWithProvenance",
    "LocationWithProvenance",
    "LocationAggregator",
    "MapPoint",
    "has_coordinates",
]
