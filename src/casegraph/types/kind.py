"""
Entity kinds tracked by a case file.

The four kinds form a closed set. Every layer works with ``EntityKind``
members; free-form tags coming from HTTP or CLI input are normalised once
through :func:`normalize_kind`.
"""

from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from ..errors import UnsupportedRelationKind


class EntityKind(str, Enum):
    PERSON = "person"
    VEHICLE = "vehicle"
    PROPERTY = "property"
    LOCATION = "location"

    @property
    def plural(self) -> str:
        return _PLURALS[self]

    @property
    def order(self) -> int:
        """Position used for canonical column order in relation tables."""
        return _ORDER[self]


_ORDER: Dict[EntityKind, int] = {kind: idx for idx, kind in enumerate(EntityKind)}

_PLURALS: Dict[EntityKind, str] = {
    EntityKind.PERSON: "persons",
    EntityKind.VEHICLE: "vehicles",
    EntityKind.PROPERTY: "properties",
    EntityKind.LOCATION: "locations",
}

# Spellings seen across callers, including the Spanish tags of the case UI.
KIND_ALIASES: Dict[str, EntityKind] = {
    "person": EntityKind.PERSON,
    "persons": EntityKind.PERSON,
    "people": EntityKind.PERSON,
    "persona": EntityKind.PERSON,
    "personas": EntityKind.PERSON,
    "vehicle": EntityKind.VEHICLE,
    "vehicles": EntityKind.VEHICLE,
    "vehiculo": EntityKind.VEHICLE,
    "vehiculos": EntityKind.VEHICLE,
    "vehículo": EntityKind.VEHICLE,
    "vehículos": EntityKind.VEHICLE,
    "property": EntityKind.PROPERTY,
    "properties": EntityKind.PROPERTY,
    "inmueble": EntityKind.PROPERTY,
    "inmuebles": EntityKind.PROPERTY,
    "location": EntityKind.LOCATION,
    "locations": EntityKind.LOCATION,
    "ubicacion": EntityKind.LOCATION,
    "ubicaciones": EntityKind.LOCATION,
    "ubicación": EntityKind.LOCATION,
}


def normalize_kind(value: Union[str, EntityKind, None]) -> EntityKind:
    """Map any accepted spelling of a kind to its ``EntityKind`` member.

    Matching is case-insensitive and ignores surrounding whitespace.

    Raises:
        UnsupportedRelationKind: if the value names no known kind.
    """
    if isinstance(value, EntityKind):
        return value
    if value is None:
        raise UnsupportedRelationKind("Entity kind is required")
    key = str(value).strip().lower()
    kind = KIND_ALIASES.get(key)
    if kind is None:
        raise UnsupportedRelationKind(f"Unknown entity kind: {value!r}")
    return kind


def normalize_kinds(values: Optional[Iterable[Union[str, EntityKind]]]) -> List[EntityKind]:
    """Normalise a collection of kinds, keeping enum order and dropping repeats.

    ``None`` or an empty collection means every kind.
    """
    if not values:
        return list(EntityKind)
    wanted = {normalize_kind(v) for v in values}
    return [kind for kind in EntityKind if kind in wanted]
