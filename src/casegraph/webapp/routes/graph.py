"""Graph routes - traversal with map points, and search optionally chained into traversal."""
import logging
from flask import Blueprint, jsonify, request

from ...errors import EntityNotFound
from ..services.event_system import emit_event, entity_ref
from ..utils.request_helpers import parse_bool_param, parse_list_param
from ..utils.responses import error_response

logger = logging.getLogger(__name__)


def _parse_depth(raw, default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"depth must be an integer, got {raw!r}")


def init_graph_routes(api_key_required, graph, resolver, engine, aggregator, settings):
    """Initialize traversal and search routes."""
    bp_graph = Blueprint('graph', __name__, url_prefix='/api')

    def _traverse_seed(seed_entry_or_entity, kind, entity_id, depth):
        result = engine.expand([(kind, entity_id)], max_depth=depth)
        points = aggregator.aggregate(seed_entry_or_entity, result)
        return result, points

    @bp_graph.get("/traverse/<kind>/<int:entity_id>")
    @api_key_required
    def api_traverse(kind, entity_id):
        """Expand an entity up to ``depth`` hops and aggregate its map points."""
        try:
            depth = _parse_depth(request.args.get("depth"), settings.default_depth)
            kind = graph.normalize_kind(kind)
            entity = graph.get_entity(kind, entity_id)
            if entity is None:
                raise EntityNotFound(kind, entity_id)
            result, points = _traverse_seed(entity, kind, entity_id, depth)
            emit_event(
                "traverse",
                f"Traversed {kind.value}:{entity_id} to depth {depth}: "
                f"{result.visited_count} nodes, {len(points)} points",
                level="warning" if result.partial else "info",
                entities=[entity_ref(kind, entity_id)],
            )
            return jsonify({
                "seed": entity.to_dict(),
                "traversal": result.to_dict(),
                "points": [p.to_dict() for p in points],
            })
        except Exception as e:
            return error_response(e, "Traversal failed")

    @bp_graph.get("/search")
    @api_key_required
    def api_search():
        """
        Resolve a search string across kinds.

        Query params:
            q: search text (required)
            kinds: comma-separated kinds, any spelling (default all)
            traverse: when truthy, each match is expanded and aggregated
            depth: traversal depth when ``traverse`` is set
        """
        try:
            q = request.args.get("q", "")
            kinds = parse_list_param(request.args.get("kinds"))
            result = resolver.resolve(q, kinds or None)
            payload = {"search": result.to_dict()}

            if parse_bool_param(request.args.get("traverse")):
                depth = _parse_depth(request.args.get("depth"), settings.default_depth)
                traversals = []
                for kind in result.kinds:
                    for match in result.matches.get(kind, []):
                        traversal, points = _traverse_seed(match.entity, kind, match.id, depth)
                        traversals.append({
                            "seed": {"kind": kind.value, "id": match.id, "match_type": match.match_type},
                            "partial": traversal.partial,
                            "visited_count": traversal.visited_count,
                            "points": [p.to_dict() for p in points],
                        })
                payload["traversals"] = traversals

            emit_event("search", f"Search '{result.query}' returned {result.total} matches")
            return jsonify(payload)
        except Exception as e:
            return error_response(e, "Search failed")

    return bp_graph
