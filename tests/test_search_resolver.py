"""Tests for the search resolver."""

from unittest.mock import MagicMock

import pytest

from casegraph.database.engine import SQLAlchemyStore
from casegraph.database.models import Location, Person, Property, Vehicle
from casegraph.errors import InvalidQuery, StoreUnavailable
from casegraph.graph import SearchResolver
from casegraph.graph.provenance import Hop
from casegraph.types import EntityKind


@pytest.fixture()
def store(tmp_path):
    store = SQLAlchemyStore(url=f"sqlite:///{tmp_path / 'search.db'}")
    store.add_entity(Person(name="Marta Solis", identification="123", aliases=["La Jefa"]))
    store.add_entity(Person(name="Pedro Rojas", identification="7-0001-0002"))
    store.add_entity(Vehicle(plate="ABC123", make="Toyota", model="Corolla"))
    store.add_entity(Vehicle(plate="QRS555", make="Honda"))
    store.add_entity(Property(category="Bodega", address="Zona Franca 123", owner="Pedro Rojas"))
    store.add_entity(Location(latitude=10.0, longitude=-84.2, category="Retén", notes="Peaje norte"))
    return store


@pytest.fixture()
def resolver(store):
    return SearchResolver(store)


def _by_type(result, kind):
    return {m.entity.id: m.match_type for m in result.matches[kind]}


class TestResolve:
    def test_identifier_exact_and_plate_substring(self, resolver, store):
        """Identification '123' is exact, plate 'ABC123' only contains it."""
        result = resolver.resolve("123", {"Person", "vehicles"})

        assert result.kinds == [EntityKind.PERSON, EntityKind.VEHICLE]
        persons = result.matches[EntityKind.PERSON]
        vehicles = result.matches[EntityKind.VEHICLE]
        assert [(m.entity.name, m.match_type) for m in persons] == [("Marta Solis", "exact")]
        assert [(m.entity.plate, m.match_type) for m in vehicles] == [("ABC123", "substring")]

    def test_kinds_default_to_all(self, resolver):
        result = resolver.resolve("123")
        assert result.kinds == list(EntityKind)
        assert [m.entity.address for m in result.matches[EntityKind.PROPERTY]] == ["Zona Franca 123"]
        assert result.matches[EntityKind.LOCATION] == []

    def test_case_insensitive_substring(self, resolver):
        result = resolver.resolve("toyota", ["vehicle"])
        assert [m.entity.plate for m in result.matches[EntityKind.VEHICLE]] == ["ABC123"]

    def test_alias_match(self, resolver):
        result = resolver.resolve("jefa", ["person"])
        assert [m.entity.name for m in result.matches[EntityKind.PERSON]] == ["Marta Solis"]

    def test_plate_exact_ignores_case_and_spaces(self, resolver):
        result = resolver.resolve("  qrs555 ", ["vehicle"])
        assert [(m.entity.plate, m.match_type) for m in result.matches[EntityKind.VEHICLE]] == [
            ("QRS555", "exact")
        ]

    def test_numeric_query_matches_primary_id_first(self, resolver):
        result = resolver.resolve("1", ["location"])
        assert _by_type(result, EntityKind.LOCATION) == {1: "id"}

    def test_oversized_number_matches_identification(self, resolver, store):
        """Numbers beyond the INTEGER key range are searched as text only."""
        person = store.add_entity(Person(name="Rosa Brenes", identification="12345678901234567890"))

        result = resolver.resolve("12345678901234567890", ["person"])

        assert _by_type(result, EntityKind.PERSON) == {person.id: "exact"}

    def test_unicode_digits_searched_as_text(self, resolver, store):
        person = store.add_entity(Person(name="Local ² Norte", identification="555"))

        result = resolver.resolve("²", ["person", "vehicle"])

        assert _by_type(result, EntityKind.PERSON) == {person.id: "substring"}
        assert result.matches[EntityKind.VEHICLE] == []

    def test_location_notes(self, resolver):
        result = resolver.resolve("peaje", ["ubicaciones"])
        assert len(result.matches[EntityKind.LOCATION]) == 1

    def test_like_wildcards_are_literal(self, resolver):
        result = resolver.resolve("%", ["person", "vehicle"])
        assert result.total == 0

    def test_seeds_follow_kind_order(self, resolver):
        result = resolver.resolve("123", ["vehicle", "person"])
        assert result.seeds() == [Hop(EntityKind.PERSON, 1), Hop(EntityKind.VEHICLE, 1)]

    def test_to_dict_uses_canonical_tags(self, resolver):
        data = resolver.resolve("123", ["personas"]).to_dict()
        assert list(data["matches"]) == ["person"]
        assert data["matches"]["person"][0]["match_type"] == "exact"
        assert data["total"] == 1


class TestFailures:
    @pytest.mark.parametrize("query", ["", "   ", None, "\t\n"])
    def test_blank_query_rejected_before_store(self, query):
        store = MagicMock()
        with pytest.raises(InvalidQuery):
            SearchResolver(store).resolve(query)
        assert store.method_calls == []

    @pytest.mark.parametrize("query", ["²", "٣", "０１", "12345678901234567890", "0"])
    def test_id_lookup_skipped_for_non_key_numbers(self, query):
        store = MagicMock()
        store.matching_exact.return_value = []
        store.matching_text.return_value = []

        SearchResolver(store).resolve(query, ["person"])

        store.get.assert_not_called()
        store.matching_exact.assert_called_once_with(EntityKind.PERSON, query, 50)

    def test_store_unavailable_propagates(self):
        store = MagicMock()
        store.matching_exact.side_effect = StoreUnavailable("down")
        with pytest.raises(StoreUnavailable):
            SearchResolver(store).resolve("abc", ["person"])

    def test_limit_is_passed_to_store(self):
        store = MagicMock()
        store.matching_exact.return_value = []
        store.matching_text.return_value = []
        SearchResolver(store, limit=7).resolve("abc", ["vehicle"])
        store.matching_text.assert_called_once_with(EntityKind.VEHICLE, "abc", 7)
