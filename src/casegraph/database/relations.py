"""
Relation table registry.

Maps every unordered pair of entity kinds to the table that stores it and to
the column holding each side. All relation reads and writes go through
:func:`table_for` so no caller has to know column names or storage order.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

from sqlalchemy.orm import InstrumentedAttribute

from ..errors import UnsupportedRelationKind
from ..types.kind import EntityKind
from .models import (
    PersonPerson,
    PersonVehicle,
    PersonProperty,
    PersonLocation,
    VehicleVehicle,
    VehicleProperty,
    VehicleLocation,
    PropertyProperty,
    PropertyLocation,
    LocationLocation,
)


@dataclass(frozen=True)
class RelationTable:
    """One relation table and the kinds stored in its two endpoint columns.

    ``left`` always precedes ``right`` in ``EntityKind`` order. Same-kind tables
    hold undirected edges, so both column orders describe the same relation.
    """
    model: type
    left: EntityKind
    right: EntityKind
    left_column: str
    right_column: str
    labelled: bool = False

    @property
    def name(self) -> str:
        return self.model.__tablename__

    @property
    def same_kind(self) -> bool:
        return self.left == self.right

    def column(self, name: str) -> InstrumentedAttribute:
        return getattr(self.model, name)

    def orient(self, kind: EntityKind) -> Tuple[str, str]:
        """Return ``(own_column, other_column)`` for an endpoint of ``kind``.

        For same-kind tables this is only one of the two orientations; callers
        that need both use :meth:`orientations`.
        """
        if kind == self.left:
            return self.left_column, self.right_column
        if kind == self.right:
            return self.right_column, self.left_column
        raise UnsupportedRelationKind(f"{kind.value} is not stored in {self.name}")

    def orientations(self, kind: EntityKind) -> Tuple[Tuple[str, str], ...]:
        if self.same_kind:
            return (
                (self.left_column, self.right_column),
                (self.right_column, self.left_column),
            )
        return (self.orient(kind),)


def _pair(a: EntityKind, b: EntityKind) -> FrozenSet[EntityKind]:
    return frozenset((a, b))


_TABLES = (
    RelationTable(PersonPerson, EntityKind.PERSON, EntityKind.PERSON,
                  "person_id_1", "person_id_2"),
    RelationTable(PersonVehicle, EntityKind.PERSON, EntityKind.VEHICLE,
                  "person_id", "vehicle_id"),
    RelationTable(PersonProperty, EntityKind.PERSON, EntityKind.PROPERTY,
                  "person_id", "property_id"),
    RelationTable(PersonLocation, EntityKind.PERSON, EntityKind.LOCATION,
                  "person_id", "location_id"),
    RelationTable(VehicleVehicle, EntityKind.VEHICLE, EntityKind.VEHICLE,
                  "vehicle_id_1", "vehicle_id_2", labelled=True),
    RelationTable(VehicleProperty, EntityKind.VEHICLE, EntityKind.PROPERTY,
                  "vehicle_id", "property_id"),
    RelationTable(VehicleLocation, EntityKind.VEHICLE, EntityKind.LOCATION,
                  "vehicle_id", "location_id"),
    RelationTable(PropertyProperty, EntityKind.PROPERTY, EntityKind.PROPERTY,
                  "property_id_1", "property_id_2", labelled=True),
    RelationTable(PropertyLocation, EntityKind.PROPERTY, EntityKind.LOCATION,
                  "property_id", "location_id"),
    RelationTable(LocationLocation, EntityKind.LOCATION, EntityKind.LOCATION,
                  "location_id_1", "location_id_2"),
)

RELATION_TABLES: Dict[FrozenSet[EntityKind], RelationTable] = {
    _pair(t.left, t.right): t for t in _TABLES
}


def table_for(kind_a: EntityKind, kind_b: EntityKind) -> RelationTable:
    """Look up the table storing relations between two kinds, in either order."""
    table: Optional[RelationTable] = RELATION_TABLES.get(_pair(kind_a, kind_b))
    if table is None:
        raise UnsupportedRelationKind(
            f"No relation table for {kind_a.value} and {kind_b.value}"
        )
    return table


def all_tables() -> Tuple[RelationTable, ...]:
    return _TABLES
