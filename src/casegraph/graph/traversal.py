"""
Level-bounded breadth-first expansion over the relation graph.

Neighbour lookups for one frontier level fan out on a thread pool; the
visited set and the result lists are only touched by the calling thread,
which merges lookups in frontier order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..types.kind import EntityKind, normalize_kind
from .provenance import Hop, Provenance
from .relation_graph import RelatedEntity, RelationGraph


SeedLike = Union[Hop, Tuple[Union[str, EntityKind], int]]

# Discovered locations only follow location-location edges.
_LOCATION_EXPANSION = (EntityKind.LOCATION,)


@dataclass
class EntityWithProvenance:
    kind: EntityKind
    entity: Any
    provenance: Provenance

    @property
    def id(self) -> int:
        return self.entity.id

    @property
    def hop(self) -> Hop:
        return self.provenance.hop

    @property
    def depth(self) -> int:
        return self.provenance.depth

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity.to_dict(),
            "depth": self.depth,
            "provenance": self.provenance.to_dict(),
        }


@dataclass
class LocationWithProvenance(EntityWithProvenance):
    @property
    def latitude(self) -> Optional[float]:
        return self.entity.latitude

    @property
    def longitude(self) -> Optional[float]:
        return self.entity.longitude


def _empty_by_kind() -> Dict[EntityKind, List[EntityWithProvenance]]:
    return {EntityKind.PERSON: [], EntityKind.VEHICLE: [], EntityKind.PROPERTY: []}


@dataclass
class TraversalResult:
    max_depth: int
    seeds: List[EntityWithProvenance] = field(default_factory=list)
    entities_by_kind: Dict[EntityKind, List[EntityWithProvenance]] = field(default_factory=_empty_by_kind)
    locations: List[LocationWithProvenance] = field(default_factory=list)
    partial: bool = False
    failed_nodes: List[Hop] = field(default_factory=list)
    visited_count: int = 0

    def entities(self, kind: EntityKind) -> List[EntityWithProvenance]:
        if kind == EntityKind.LOCATION:
            return list(self.locations)
        return list(self.entities_by_kind.get(kind, []))

    def found(self) -> List[EntityWithProvenance]:
        """Every discovered entity (seeds excluded), ordered by depth."""
        items: List[EntityWithProvenance] = []
        for kind in EntityKind:
            items.extend(self.entities(kind))
        return sorted(items, key=lambda e: e.depth)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_depth": self.max_depth,
            "seeds": [s.to_dict() for s in self.seeds],
            "entities_by_kind": {
                kind.value: [e.to_dict() for e in entries]
                for kind, entries in self.entities_by_kind.items()
            },
            "locations": [loc.to_dict() for loc in self.locations],
            "partial": self.partial,
            "failed_nodes": [h.to_dict() for h in self.failed_nodes],
            "visited_count": self.visited_count,
        }


class TraversalEngine:
    """
    Expand seeds into everything reachable within ``max_depth`` hops.

    Each ``(kind, id)`` is visited at most once across the whole traversal,
    so the provenance kept for a node is the first one found: shortest chain
    first, then frontier order.
    """

    def __init__(self, graph: RelationGraph, max_workers: int = 4, depth_limit: int = 4,
                 logger: Optional[logging.Logger] = None):
        self.graph = graph
        self.max_workers = max(1, int(max_workers))
        self.depth_limit = depth_limit
        self.logger = logger or logging.getLogger(__name__)

    def expand(self, seeds: Iterable[SeedLike], max_depth: int = 2) -> TraversalResult:
        """
        Breadth-first expansion from ``seeds``.

        Args:
            seeds: ``Hop`` objects or ``(kind, id)`` pairs; kinds may use any accepted spelling
            max_depth: hops from the seeds; nodes found at this depth are returned but not expanded

        Returns:
            TraversalResult; ``partial`` is set when some neighbour lookups failed

        Raises:
            ValueError: ``max_depth`` is not an integer within ``[0, depth_limit]``
        """
        if isinstance(max_depth, bool) or not isinstance(max_depth, int):
            raise ValueError(f"max_depth must be an integer, got {max_depth!r}")
        if max_depth < 0 or max_depth > self.depth_limit:
            raise ValueError(f"max_depth must be between 0 and {self.depth_limit}, got {max_depth}")

        result = TraversalResult(max_depth=max_depth)
        visited = set()
        frontier: List[EntityWithProvenance] = []

        for hop in self._seed_hops(seeds):
            if hop in visited:
                continue
            visited.add(hop)
            entity = self.graph.get_entity(hop.kind, hop.id)
            if entity is None:
                self.logger.info(f"Seed {hop} not found, skipping")
                continue
            entry = self._entry(hop.kind, entity, Provenance(hop))
            result.seeds.append(entry)
            frontier.append(entry)

        for depth in range(1, max_depth + 1):
            if not frontier:
                break
            lookups = self._lookup_level(frontier)
            next_frontier: List[EntityWithProvenance] = []
            for node, neighbors in zip(frontier, lookups):
                if neighbors is None:
                    result.partial = True
                    result.failed_nodes.append(node.hop)
                    continue
                for of_kind in EntityKind:
                    for related in neighbors.get(of_kind, []):
                        hop = Hop(of_kind, related.id)
                        if hop in visited:
                            continue
                        visited.add(hop)
                        entry = self._entry(
                            of_kind, related.entity, node.provenance.extend(of_kind, related.id, related.label)
                        )
                        if of_kind == EntityKind.LOCATION:
                            result.locations.append(entry)
                        else:
                            result.entities_by_kind[of_kind].append(entry)
                        next_frontier.append(entry)
            self.logger.debug(f"Depth {depth}: {len(next_frontier)} new nodes from {len(frontier)} frontier nodes")
            frontier = next_frontier

        result.visited_count = len(visited)
        if result.partial:
            self.logger.warning(
                f"Traversal returned partial results, {len(result.failed_nodes)} lookups failed"
            )
        return result

    def _seed_hops(self, seeds: Iterable[SeedLike]) -> List[Hop]:
        hops = []
        for seed in seeds:
            if isinstance(seed, Hop):
                hops.append(seed)
            else:
                kind, entity_id = seed
                hops.append(Hop(normalize_kind(kind), int(entity_id)))
        return hops

    def _entry(self, kind: EntityKind, entity: Any, provenance: Provenance) -> EntityWithProvenance:
        if kind == EntityKind.LOCATION:
            return LocationWithProvenance(kind, entity, provenance)
        return EntityWithProvenance(kind, entity, provenance)

    def _expansion_kinds(self, node: EntityWithProvenance) -> Optional[Sequence[EntityKind]]:
        if node.kind == EntityKind.LOCATION and node.depth > 0:
            return _LOCATION_EXPANSION
        return None

    def _lookup(self, node: EntityWithProvenance) -> Dict[EntityKind, List[RelatedEntity]]:
        return self.graph.neighbors(node.kind, node.id, kinds=self._expansion_kinds(node))

    def _safe_lookup(self, node: EntityWithProvenance) -> Optional[Dict[EntityKind, List[RelatedEntity]]]:
        try:
            return self._lookup(node)
        except Exception as e:
            self.logger.warning(f"Neighbour lookup failed for {node.hop}: {e}")
            return None

    def _lookup_level(self, frontier: List[EntityWithProvenance]) -> List[Optional[Dict[EntityKind, List[RelatedEntity]]]]:
        """Neighbours for every frontier node, aligned with the frontier. ``None`` marks a failed lookup."""
        if self.max_workers == 1 or len(frontier) == 1:
            return [self._safe_lookup(node) for node in frontier]

        results: List[Optional[Dict[EntityKind, List[RelatedEntity]]]] = [None] * len(frontier)
        with ThreadPoolExecutor(max_workers=min(len(frontier), self.max_workers)) as pool:
            future_to_index = {
                pool.submit(self._lookup, node): idx
                for idx, node in enumerate(frontier)
            }
            for future in as_completed(future_to_index):
                idx = future_to_index[future]
                try:
                    results[idx] = future.result()
                except Exception as e:
                    self.logger.warning(f"Neighbour lookup failed for {frontier[idx].hop}: {e}")
        return results
