"""Tests for the HTTP routes."""

from unittest.mock import patch

import pytest

from casegraph.config import Settings
from casegraph.database.engine import SQLAlchemyStore
from casegraph.database.models import Location, Person, Property, Vehicle
from casegraph.errors import StoreUnavailable
from casegraph.webapp.app import create_app
from casegraph.webapp.services.event_system import ActivityJournal, CaseEvent


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------

@pytest.fixture()
def store(tmp_path):
    return SQLAlchemyStore(url=f"sqlite:///{tmp_path / 'web.db'}")


@pytest.fixture()
def seeded(store):
    return {
        "p1": store.add_entity(Person(name="Ana Mora", identification="123")),
        "v1": store.add_entity(Vehicle(plate="ABC123", make="Toyota")),
        "r1": store.add_entity(Property(category="Casa", address="Calle 8", latitude=9.8, longitude=-84.1)),
        "l1": store.add_entity(Location(latitude=9.9281, longitude=-84.0907, category="Retén")),
    }


@pytest.fixture()
def settings(store):
    return Settings(db_url=store.url, traversal_workers=2)


@pytest.fixture()
def client(settings, store):
    app = create_app(settings=settings, store=store)
    app.config["TESTING"] = True
    return app.test_client()


def _relate(client, kind1, id1, kind2, id2, **extra):
    return client.post("/api/relation", json={"kind1": kind1, "id1": id1, "kind2": kind2, "id2": id2, **extra})


# ------------------------------------------------------------------
# Relations
# ------------------------------------------------------------------

class TestRelationRoutes:
    def test_create_returns_canonical_kinds(self, client, seeded):
        resp = _relate(client, "Personas", seeded["p1"].id, "VEHICLES", seeded["v1"].id)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["kinds"] == ["person", "vehicle"]
        assert isinstance(body["relation_id"], int)

    def test_delete_twice(self, client, seeded):
        _relate(client, "person", seeded["p1"].id, "vehicle", seeded["v1"].id)
        payload = {"kind1": "vehicle", "id1": seeded["v1"].id, "kind2": "person", "id2": seeded["p1"].id}

        first = client.delete("/api/relation", json=payload)
        second = client.delete("/api/relation", json=payload)

        assert first.get_json()["success"] is True
        assert second.status_code == 200
        assert second.get_json() == {"success": False, "kinds": ["vehicle", "person"], "relation_id": None}

    def test_self_relation_is_400(self, client, seeded):
        resp = _relate(client, "person", seeded["p1"].id, "persons", seeded["p1"].id)
        assert resp.status_code == 400
        assert "itself" in resp.get_json()["error"]

    def test_unknown_kind_is_400(self, client, seeded):
        resp = _relate(client, "boat", 1, "person", seeded["p1"].id)
        assert resp.status_code == 400

    def test_missing_fields_is_400(self, client):
        resp = client.post("/api/relation", json={"kind1": "person", "id1": 1})
        assert resp.status_code == 400
        assert "kind2" in resp.get_json()["error"]

    def test_missing_entity_is_404(self, client, seeded):
        resp = _relate(client, "person", seeded["p1"].id, "vehicle", 777)
        assert resp.status_code == 404

    def test_relations_detail(self, client, store, seeded):
        _relate(client, "person", seeded["p1"].id, "vehicle", seeded["v1"].id)
        _relate(client, "person", seeded["p1"].id, "location", seeded["l1"].id)
        store.add_observation(seeded["p1"].KIND, seeded["p1"].id, "agent", "Visto en el retén")

        resp = client.get(f"/api/relations/personas/{seeded['p1'].id}")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["entity"]["kind"] == "person"
        assert set(body["neighbors"]) == {"person", "vehicle", "property", "location"}
        assert [v["plate"] for v in body["neighbors"]["vehicle"]] == ["ABC123"]
        assert body["counts"]["location"] == 1
        assert body["observations"][0]["detail"] == "Visto en el retén"

    def test_relations_unknown_entity_is_404(self, client):
        assert client.get("/api/relations/vehicle/404").status_code == 404

    def test_oversized_ids(self, client, seeded):
        huge = 2 ** 70
        assert client.get(f"/api/relations/person/{huge}").status_code == 404
        resp = _relate(client, "person", seeded["p1"].id, "vehicle", huge)
        assert resp.status_code == 400
        assert "entity ids" in resp.get_json()["error"]
        delete = client.delete("/api/relation", json={"kind1": "person", "id1": huge, "kind2": "vehicle", "id2": 1})
        assert delete.status_code == 400


# ------------------------------------------------------------------
# Traversal and search
# ------------------------------------------------------------------

class TestGraphRoutes:
    def test_traverse_with_points(self, client, seeded):
        _relate(client, "person", seeded["p1"].id, "vehicle", seeded["v1"].id)
        _relate(client, "vehicle", seeded["v1"].id, "location", seeded["l1"].id)
        _relate(client, "person", seeded["p1"].id, "property", seeded["r1"].id)

        resp = client.get(f"/api/traverse/person/{seeded['p1'].id}?depth=2")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["seed"]["name"] == "Ana Mora"
        assert body["traversal"]["max_depth"] == 2
        assert body["traversal"]["partial"] is False
        keys = [p["key"] for p in body["points"]]
        assert keys == [str(seeded["l1"].id), f"property-{seeded['r1'].id}"]
        assert body["points"][0]["provenance"] == [f"vehicle:{seeded['v1'].id}"]

    def test_traverse_default_depth(self, client, seeded):
        body = client.get(f"/api/traverse/vehicle/{seeded['v1'].id}").get_json()
        assert body["traversal"]["max_depth"] == 2

    @pytest.mark.parametrize("depth", ["abc", "-1", "9"])
    def test_traverse_bad_depth_is_400(self, client, seeded, depth):
        resp = client.get(f"/api/traverse/person/{seeded['p1'].id}?depth={depth}")
        assert resp.status_code == 400

    def test_traverse_unknown_entity_is_404(self, client):
        assert client.get("/api/traverse/location/999").status_code == 404
        assert client.get(f"/api/traverse/location/{2 ** 70}").status_code == 404

    def test_search_oversized_number(self, client, store):
        store.add_entity(Person(name="Rosa Brenes", identification="12345678901234567890"))
        resp = client.get("/api/search?q=12345678901234567890&kinds=person")
        assert resp.status_code == 200
        assert [m["match_type"] for m in resp.get_json()["search"]["matches"]["person"]] == ["exact"]

    def test_search(self, client, seeded):
        resp = client.get("/api/search?q=123&kinds=persons,vehicle")
        assert resp.status_code == 200
        matches = resp.get_json()["search"]["matches"]
        assert [m["match_type"] for m in matches["person"]] == ["exact"]
        assert [m["match_type"] for m in matches["vehicle"]] == ["substring"]
        assert "traversals" not in resp.get_json()

    def test_search_chained_into_traversal(self, client, seeded):
        _relate(client, "vehicle", seeded["v1"].id, "location", seeded["l1"].id)

        body = client.get("/api/search?q=ABC123&kinds=vehicle&traverse=1&depth=1").get_json()

        assert len(body["traversals"]) == 1
        chained = body["traversals"][0]
        assert chained["seed"] == {"kind": "vehicle", "id": seeded["v1"].id, "match_type": "exact"}
        assert [p["key"] for p in chained["points"]] == [str(seeded["l1"].id)]

    def test_blank_search_is_400(self, client):
        assert client.get("/api/search?q=%20%20").status_code == 400

    def test_store_unavailable_is_503(self, client, store):
        with patch.object(store, "matching_exact", side_effect=StoreUnavailable("database unavailable")):
            resp = client.get("/api/search?q=abc")
        assert resp.status_code == 503


# ------------------------------------------------------------------
# App-level routes
# ------------------------------------------------------------------

class TestAppRoutes:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "ok"

    def test_recent_logs_record_relation_events(self, client, seeded):
        _relate(client, "person", seeded["p1"].id, "vehicle", seeded["v1"].id)
        events = client.get("/api/logs/recent?limit=50").get_json()["events"]
        assert any(e["step"] == "relation" for e in events)

    def test_recent_logs_filtered_by_entity(self, client, seeded):
        client.post("/api/logs/clear")
        p1, v1, l1 = seeded["p1"], seeded["v1"], seeded["l1"]
        _relate(client, "person", p1.id, "vehicle", v1.id)
        _relate(client, "vehicle", v1.id, "location", l1.id)
        client.get(f"/api/traverse/person/{p1.id}?depth=1")

        events = client.get(f"/api/logs/recent?entity=person:{p1.id}").get_json()["events"]
        assert [e["step"] for e in events] == ["relation", "traverse"]
        assert events[0]["entities"] == [f"person:{p1.id}", f"vehicle:{v1.id}"]

        located = client.get(f"/api/logs/recent?step=relation&entity=location:{l1.id}").get_json()["events"]
        assert len(located) == 1

    def test_api_key_guard(self, store, seeded):
        app = create_app(settings=Settings(db_url=store.url, api_key="s3cret"), store=store)
        client = app.test_client()

        assert client.get(f"/api/relations/person/{seeded['p1'].id}").status_code == 401
        ok = client.get(f"/api/relations/person/{seeded['p1'].id}", headers={"X-API-Key": "s3cret"})
        assert ok.status_code == 200
        assert client.get("/api/health").status_code == 200


class TestActivityJournal:
    def test_bounded_and_filtered(self):
        journal = ActivityJournal(limit=3)
        for i in range(5):
            journal.append(CaseEvent(step="relation", message=f"edit {i}", entities=[f"person:{i}"]))

        assert len(journal) == 3
        assert [e.message for e in journal.recent()] == ["edit 2", "edit 3", "edit 4"]
        assert [e.message for e in journal.recent(entity="person:3")] == ["edit 3"]
        assert journal.recent(step="search") == []
        assert [e.message for e in journal.recent(limit=1)] == ["edit 4"]
