"""
Map point aggregation.

Turns a traversal into the set of geolocated points a map view renders:
real Location rows, plus synthetic points for vehicles and properties that
carry their own coordinates but have no Location relation.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

from ..types.kind import EntityKind
from .provenance import Provenance
from .relation_graph import RelationGraph
from .traversal import EntityWithProvenance, TraversalResult


ORIGIN_RELATION = "relation"
ORIGIN_SEED = "seed"
ORIGIN_INLINE = "inline"
ORIGIN_ADDRESS = "address"

_INLINE_KINDS = (EntityKind.PROPERTY, EntityKind.VEHICLE)


def has_coordinates(latitude: Optional[float], longitude: Optional[float],
                    zero_is_unset: bool = True) -> bool:
    """True when both coordinates are set.

    With ``zero_is_unset`` the exact pair (0, 0) also counts as unset.
    """
    if latitude is None or longitude is None:
        return False
    if zero_is_unset and latitude == 0 and longitude == 0:
        return False
    return True


@dataclass
class MapPoint:
    key: str
    latitude: float
    longitude: float
    synthetic: bool
    origin: str
    provenance: Provenance
    location_id: Optional[int] = None
    source: Optional[str] = None
    category: Optional[str] = None
    notes: Optional[str] = None
    observed_at: Optional[str] = None

    def sort_key(self):
        return (self.synthetic, self.location_id or 0, self.key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "synthetic": self.synthetic,
            "origin": self.origin,
            "location_id": self.location_id,
            "source": self.source,
            "category": self.category,
            "notes": self.notes,
            "observed_at": self.observed_at,
            "provenance": [str(h) for h in self.provenance.via()],
            "depth": self.provenance.depth,
        }


class LocationAggregator:
    """Collect map points reachable from a seed."""

    def __init__(self, graph: RelationGraph, zero_is_unset: bool = True, match_addresses: bool = False,
                 address_category: Optional[str] = None, logger: Optional[logging.Logger] = None):
        self.graph = graph
        self.zero_is_unset = zero_is_unset
        self.match_addresses = match_addresses
        self.address_category = address_category
        self.logger = logger or logging.getLogger(__name__)

    def aggregate(self, seed: Union[EntityWithProvenance, Any, None],
                  traversal: TraversalResult) -> List[MapPoint]:
        """
        Build the deduplicated, sorted point list for one seed.

        ``seed`` may be an entity model instance, a traversal seed entry or
        None; when None the traversal's own seeds are used.
        """
        points: Dict[str, MapPoint] = {}

        def offer(point: Optional[MapPoint]):
            if point is not None and point.key not in points:
                points[point.key] = point

        seeds = self._seed_entries(seed, traversal)

        for entry in seeds:
            if entry.kind == EntityKind.LOCATION:
                offer(self._location_point(entry.entity, entry.provenance, ORIGIN_SEED))

        for entry in traversal.locations:
            offer(self._location_point(entry.entity, entry.provenance, ORIGIN_RELATION))

        inline_candidates = [e for e in seeds if e.kind in _INLINE_KINDS]
        for kind in _INLINE_KINDS:
            inline_candidates.extend(traversal.entities_by_kind.get(kind, []))
        for entry in inline_candidates:
            offer(self._inline_point(entry))

        if self.match_addresses:
            for point in self._address_points(seeds, traversal):
                offer(point)

        ordered = sorted(points.values(), key=MapPoint.sort_key)
        self.logger.debug(
            f"Aggregated {len(ordered)} map points "
            f"({sum(1 for p in ordered if p.synthetic)} synthetic)"
        )
        return ordered

    def _seed_entries(self, seed, traversal: TraversalResult) -> List[EntityWithProvenance]:
        if seed is None:
            return list(traversal.seeds)
        if isinstance(seed, EntityWithProvenance):
            return [seed]
        kind = seed.KIND
        for entry in traversal.seeds:
            if entry.kind == kind and entry.id == seed.id:
                return [entry]
        return [EntityWithProvenance(kind, seed, Provenance.root(kind, seed.id))]

    def _location_point(self, location, provenance: Provenance, origin: str) -> Optional[MapPoint]:
        if not has_coordinates(location.latitude, location.longitude, self.zero_is_unset):
            return None
        parent = provenance.parent
        return MapPoint(
            key=str(location.id),
            latitude=location.latitude,
            longitude=location.longitude,
            synthetic=False,
            origin=origin,
            provenance=provenance,
            location_id=location.id,
            source=str(parent.hop) if parent else None,
            category=location.category,
            notes=location.notes,
            observed_at=location.observed_at.isoformat() if location.observed_at else None,
        )

    def _inline_point(self, entry: EntityWithProvenance) -> Optional[MapPoint]:
        entity = entry.entity
        if not has_coordinates(entity.latitude, entity.longitude, self.zero_is_unset):
            return None
        try:
            if self.graph.has_location(entry.kind, entry.id):
                return None
        except Exception as e:
            # Fall back to the inline position
            self.logger.warning(f"Location probe failed for {entry.hop}: {e}")
        return MapPoint(
            key=f"{entry.kind.value}-{entry.id}",
            latitude=entity.latitude,
            longitude=entity.longitude,
            synthetic=True,
            origin=ORIGIN_INLINE,
            provenance=entry.provenance,
            source=str(entry.hop),
            category=entity.category,
            notes=entity.label(),
        )

    def _address_points(self, seeds: List[EntityWithProvenance],
                        traversal: TraversalResult) -> Iterable[MapPoint]:
        entries = list(seeds)
        entries.extend(traversal.entities_by_kind.get(EntityKind.PERSON, []))
        entries.extend(traversal.entities_by_kind.get(EntityKind.PROPERTY, []))
        for entry in entries:
            if entry.kind == EntityKind.PERSON:
                addresses = list(entry.entity.addresses or [])
            elif entry.kind == EntityKind.PROPERTY:
                addresses = [entry.entity.address] if entry.entity.address else []
            else:
                continue
            for address in addresses:
                try:
                    matches = self.graph.locations_mentioning(address, category=self.address_category)
                except Exception as e:
                    self.logger.warning(f"Address match failed for {entry.hop}: {e}")
                    continue
                for location in matches:
                    point = self._location_point(
                        location, entry.provenance.extend(EntityKind.LOCATION, location.id), ORIGIN_ADDRESS
                    )
                    if point is not None:
                        yield point
