"""Relation routes - depth-1 neighbours, create and delete relations."""
import logging
from flask import Blueprint, jsonify, request

from ...errors import EntityNotFound
from ..services.event_system import emit_event, entity_ref
from ..utils.request_helpers import relation_payload, safe_int
from ..utils.responses import error_response

logger = logging.getLogger(__name__)


def init_relation_routes(api_key_required, graph):
    """Initialize relation routes."""
    bp_relations = Blueprint('relations', __name__, url_prefix='/api')

    @bp_relations.get("/relations/<kind>/<int:entity_id>")
    @api_key_required
    def api_entity_relations(kind, entity_id):
        """Get an entity, its direct neighbours grouped by kind, and its observations."""
        try:
            kind = graph.normalize_kind(kind)
            entity = graph.get_entity(kind, entity_id)
            if entity is None:
                raise EntityNotFound(kind, entity_id)
            neighbors = graph.neighbors(kind, entity_id)
            limit = safe_int(request.args.get("observations"), 20)
            observations = graph.observations(kind, entity_id, limit=limit) if limit > 0 else []
            return jsonify({
                "entity": entity.to_dict(),
                "neighbors": {
                    k.value: [r.to_dict() for r in related]
                    for k, related in neighbors.items()
                },
                "counts": {k.value: len(related) for k, related in neighbors.items()},
                "observations": [o.to_dict() for o in observations],
            })
        except Exception as e:
            return error_response(e, "Relations lookup failed")

    @bp_relations.post("/relation")
    @api_key_required
    def api_create_relation():
        """Create a relation between two entities."""
        try:
            data = relation_payload()
            outcome = graph.create_relation(
                data["kind1"], data["id1"], data["kind2"], data["id2"], label=data["label"]
            )
            k1, k2 = outcome.kinds
            emit_event(
                "relation",
                f"Related {k1.value}:{data['id1']} with {k2.value}:{data['id2']}",
                payload=outcome.to_dict(),
                entities=[entity_ref(k1, data["id1"]), entity_ref(k2, data["id2"])],
            )
            return jsonify(outcome.to_dict())
        except Exception as e:
            return error_response(e, "Relation create failed")

    @bp_relations.delete("/relation")
    @api_key_required
    def api_delete_relation():
        """Delete a relation; succeeds with ``success: false`` when nothing was removed."""
        try:
            data = relation_payload()
            outcome = graph.delete_relation(data["kind1"], data["id1"], data["kind2"], data["id2"])
            if outcome.success:
                k1, k2 = outcome.kinds
                emit_event(
                    "relation",
                    f"Unrelated {k1.value}:{data['id1']} from {k2.value}:{data['id2']}",
                    payload=outcome.to_dict(),
                    entities=[entity_ref(k1, data["id1"]), entity_ref(k2, data["id2"])],
                )
            return jsonify(outcome.to_dict())
        except Exception as e:
            return error_response(e, "Relation delete failed")

    return bp_relations
