"""Tests for entity kind normalisation and the relation table registry."""

import pytest

from casegraph.errors import InvalidRelation, UnsupportedRelationKind
from casegraph.types import EntityKind, normalize_kind, normalize_kinds
from casegraph.database.relations import RELATION_TABLES, all_tables, table_for


class TestNormalizeKind:
    @pytest.mark.parametrize("raw, expected", [
        ("person", EntityKind.PERSON),
        ("Persons", EntityKind.PERSON),
        ("  people ", EntityKind.PERSON),
        ("personas", EntityKind.PERSON),
        ("VEHICLE", EntityKind.VEHICLE),
        ("vehiculos", EntityKind.VEHICLE),
        ("vehículo", EntityKind.VEHICLE),
        ("properties", EntityKind.PROPERTY),
        ("inmueble", EntityKind.PROPERTY),
        ("Locations", EntityKind.LOCATION),
        ("ubicaciones", EntityKind.LOCATION),
        ("ubicación", EntityKind.LOCATION),
    ])
    def test_accepted_spellings(self, raw, expected):
        assert normalize_kind(raw) is expected

    def test_enum_passthrough(self):
        assert normalize_kind(EntityKind.LOCATION) is EntityKind.LOCATION

    @pytest.mark.parametrize("raw", ["", "   ", "boat", None, "persona-x"])
    def test_unknown_kind_rejected(self, raw):
        with pytest.raises(UnsupportedRelationKind):
            normalize_kind(raw)

    def test_unsupported_kind_is_invalid_relation(self):
        with pytest.raises(InvalidRelation):
            normalize_kind("organization")

    def test_canonical_output_is_singular(self):
        assert normalize_kind("vehicles").value == "vehicle"
        assert EntityKind.PROPERTY.plural == "properties"


class TestNormalizeKinds:
    def test_empty_means_all(self):
        assert normalize_kinds(None) == list(EntityKind)
        assert normalize_kinds([]) == list(EntityKind)

    def test_dedup_and_enum_order(self):
        assert normalize_kinds(["locations", "person", "personas"]) == [
            EntityKind.PERSON,
            EntityKind.LOCATION,
        ]


class TestRelationRegistry:
    def test_every_kind_pair_has_a_table(self):
        kinds = list(EntityKind)
        for a in kinds:
            for b in kinds:
                assert table_for(a, b) is table_for(b, a)
        assert len(RELATION_TABLES) == 10
        assert len(all_tables()) == 10

    def test_columns_follow_enum_order(self):
        for table in all_tables():
            assert table.left.order <= table.right.order

    def test_only_vehicle_and_property_pairs_are_labelled(self):
        labelled = {t.name for t in all_tables() if t.labelled}
        assert labelled == {"vehicle_vehicle", "property_property"}

    def test_orient_both_directions(self):
        table = table_for(EntityKind.LOCATION, EntityKind.PERSON)
        assert table.name == "person_location"
        assert table.orient(EntityKind.PERSON) == ("person_id", "location_id")
        assert table.orient(EntityKind.LOCATION) == ("location_id", "person_id")

    def test_same_kind_has_two_orientations(self):
        table = table_for(EntityKind.VEHICLE, EntityKind.VEHICLE)
        assert table.same_kind
        assert len(table.orientations(EntityKind.VEHICLE)) == 2

    def test_orient_rejects_foreign_kind(self):
        table = table_for(EntityKind.PERSON, EntityKind.VEHICLE)
        with pytest.raises(UnsupportedRelationKind):
            table.orient(EntityKind.LOCATION)
