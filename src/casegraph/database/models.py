from __future__ import annotations

from datetime import datetime
from typing import Optional, Any

from sqlalchemy import (
    DateTime,
    Float,
    Integer,
    String,
    Text,
    JSON,
    Index,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from ..types.kind import EntityKind


Base = declarative_base()


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# -------- Entities --------

class Person(Base):
    __tablename__ = "persons"
    KIND = EntityKind.PERSON

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    identification: Mapped[str] = mapped_column(String, nullable=False, index=True)
    aliases: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    phones: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    addresses: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    photo: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    def label(self) -> str:
        return f"{self.name} ({self.identification})" if self.identification else self.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.KIND.value,
            "id": self.id,
            "name": self.name,
            "identification": self.identification,
            "aliases": list(self.aliases or []),
            "phones": list(self.phones or []),
            "addresses": list(self.addresses or []),
            "photo": self.photo,
        }


class Vehicle(Base):
    __tablename__ = "vehicles"
    KIND = EntityKind.VEHICLE

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plate: Mapped[str] = mapped_column(String, nullable=False, index=True)
    make: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    model: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    photo: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    # Last known position carried on the vehicle itself
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    def label(self) -> str:
        desc = " ".join(p for p in (self.make, self.model) if p)
        return f"{desc} ({self.plate})" if desc else self.plate

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.KIND.value,
            "id": self.id,
            "plate": self.plate,
            "make": self.make,
            "model": self.model,
            "color": self.color,
            "category": self.category,
            "photo": self.photo,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


class Property(Base):
    __tablename__ = "properties"
    KIND = EntityKind.PROPERTY

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category: Mapped[str] = mapped_column(String, nullable=False)
    address: Mapped[str] = mapped_column(String, nullable=False)
    owner: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    photo: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    def label(self) -> str:
        return f"{self.category}: {self.address}" if self.category else self.address

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.KIND.value,
            "id": self.id,
            "category": self.category,
            "address": self.address,
            "owner": self.owner,
            "notes": self.notes,
            "photo": self.photo,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


class Location(Base):
    __tablename__ = "locations"
    KIND = EntityKind.LOCATION

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    category: Mapped[str] = mapped_column(String, nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    observed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def label(self) -> str:
        if self.latitude is None or self.longitude is None:
            return self.category
        return f"{self.category}: [{self.latitude:.6f}, {self.longitude:.6f}]"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.KIND.value,
            "id": self.id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "category": self.category,
            "notes": self.notes,
            "observed_at": _iso(self.observed_at),
        }


ENTITY_MODELS = {
    EntityKind.PERSON: Person,
    EntityKind.VEHICLE: Vehicle,
    EntityKind.PROPERTY: Property,
    EntityKind.LOCATION: Location,
}


class Observation(Base):
    """Timestamped note attached to one entity, shown in detail views."""
    __tablename__ = "observations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    author: Mapped[str] = mapped_column(String, nullable=False)
    detail: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_observation_entity", "kind", "entity_id"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "entity_id": self.entity_id,
            "author": self.author,
            "detail": self.detail,
            "created_at": _iso(self.created_at),
        }


# -------- Relations --------
# Endpoint columns carry no foreign keys: entities are deleted by other
# services that do not clean up relation rows.

class PersonPerson(Base):
    __tablename__ = "person_person"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    person_id_1: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    person_id_2: Mapped[int] = mapped_column(Integer, nullable=False, index=True)


class PersonVehicle(Base):
    __tablename__ = "person_vehicle"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    person_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    vehicle_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)


class PersonProperty(Base):
    __tablename__ = "person_property"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    person_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)


class PersonLocation(Base):
    __tablename__ = "person_location"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    person_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)


class VehicleVehicle(Base):
    __tablename__ = "vehicle_vehicle"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vehicle_id_1: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    vehicle_id_2: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    label: Mapped[Optional[str]] = mapped_column(String, nullable=True)


class VehicleProperty(Base):
    __tablename__ = "vehicle_property"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vehicle_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)


class VehicleLocation(Base):
    __tablename__ = "vehicle_location"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vehicle_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)


class PropertyProperty(Base):
    __tablename__ = "property_property"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    property_id_1: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    property_id_2: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    label: Mapped[Optional[str]] = mapped_column(String, nullable=True)


class PropertyLocation(Base):
    __tablename__ = "property_location"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)


class LocationLocation(Base):
    __tablename__ = "location_location"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    location_id_1: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    location_id_2: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
