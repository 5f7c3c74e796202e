from flask import Flask, request, jsonify
from flask_cors import CORS
from functools import wraps
import logging
from typing import Optional

from ..config import Settings
from ..database.engine import SQLAlchemyStore
from ..graph import LocationAggregator, RelationGraph, SearchResolver, TraversalEngine
from .routes.graph import init_graph_routes
from .routes.relations import init_relation_routes
from .services.event_system import init_event_logging, recent_events, clear_events
from .utils.request_helpers import safe_int

logger = logging.getLogger(__name__)


def make_api_key_required(settings: Settings):
    """Build the auth decorator bound to ``settings.api_key``."""

    def api_key_required(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            # If no key configured, allow open access (for local dev)
            if not settings.api_key:
                return fn(*args, **kwargs)
            key = request.headers.get("X-API-Key") or request.args.get("api_key")
            if key != settings.api_key:
                return jsonify({"error": "unauthorized"}), 401
            return fn(*args, **kwargs)

        return wrapper

    return api_key_required


def create_app(settings: Optional[Settings] = None, store: Optional[SQLAlchemyStore] = None) -> Flask:
    """
    Build the Flask application.

    Args:
        settings: Configuration; read from the environment when omitted
        store: Entity/relation store; created from ``settings.db_url`` when omitted
    """
    settings = settings or Settings.from_env()
    store = store or SQLAlchemyStore(settings.db_url)

    app = Flask(__name__)
    app.config["CASEGRAPH_SETTINGS"] = settings
    app.config["CASEGRAPH_STORE"] = store
    CORS(app, resources={r"/api/*": {"origins": settings.cors_origins}})
    init_event_logging()

    api_key_required = make_api_key_required(settings)

    graph = RelationGraph(store)
    resolver = SearchResolver(store, limit=settings.search_limit)
    engine = TraversalEngine(
        graph,
        max_workers=settings.traversal_workers,
        depth_limit=settings.max_traversal_depth,
    )
    aggregator = LocationAggregator(
        graph,
        zero_is_unset=settings.zero_is_unset,
        match_addresses=settings.match_addresses,
    )

    app.register_blueprint(init_relation_routes(api_key_required, graph))
    app.register_blueprint(init_graph_routes(api_key_required, graph, resolver, engine, aggregator, settings))

    @app.get("/api/health")
    def health():
        db_ok = True
        try:
            store.stats()
        except Exception as e:
            logger.warning(f"Health check failed: {e}")
            db_ok = False
        return jsonify({
            "status": "ok" if db_ok else "degraded",
            "database": db_ok,
            "max_depth": settings.max_traversal_depth,
        }), (200 if db_ok else 503)

    @app.get("/api/logs/recent")
    @api_key_required
    def logs_recent():
        limit = min(safe_int(request.args.get("limit"), 200), 1000)
        return jsonify({"events": recent_events(
            limit=limit,
            level=request.args.get("level"),
            step=request.args.get("step"),
            entity=request.args.get("entity"),
        )})

    @app.post("/api/logs/clear")
    @api_key_required
    def logs_clear():
        clear_events()
        return jsonify({"status": "cleared"})

    logger.info(f"casegraph webapp ready with DB: {settings.db_url}")
    return app


def main():
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app = create_app(settings)
    app.run(host="0.0.0.0", port=8080, debug=settings.debug)


if __name__ == "__main__":
    main()
