"""
Database CLI for casegraph.

Provides command-line interface for database operations including:
- Schema initialisation and statistics
- Relation management between persons, vehicles, properties and locations
- Search, neighbour lookups and traversal with map points
"""

import argparse
import json
import logging
import sys
from datetime import datetime

from ..config import Settings
from ..graph import LocationAggregator, RelationGraph, SearchResolver, TraversalEngine
from .engine import SQLAlchemyStore
from .models import Base, Location, Person, Property, Vehicle


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger(__name__)


def get_store(db_url: str) -> SQLAlchemyStore:
    """Create database store from URL."""
    return SQLAlchemyStore(url=db_url)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


# ============================================================================
# Schema Commands
# ============================================================================

def cmd_init_db(store: SQLAlchemyStore, args: argparse.Namespace) -> None:
    """Initialize database tables."""
    print(f"Initializing database: {args.db_url}")
    Base.metadata.create_all(store.engine)
    print("Database tables created/updated successfully.")


def cmd_stats(store: SQLAlchemyStore, args: argparse.Namespace) -> None:
    """Show database statistics."""
    stats = store.stats()
    if args.format == "json":
        _print_json(stats)
        return

    print("\n=== Database Statistics ===\n")
    for section, counts in stats.items():
        print(f"{section.title()}:")
        for name, count in counts.items():
            print(f"  {name:<20} {count}")
        print()


def cmd_seed_demo(store: SQLAlchemyStore, args: argparse.Namespace) -> None:
    """Load a small connected case file for trying the other commands."""
    graph = RelationGraph(store)
    person = store.add_entity(Person(
        name="Ana Mora", identification="1-1234-0567",
        aliases=["La Flaca"], addresses=["Barrio Escalante, San Jose"],
    ))
    partner = store.add_entity(Person(name="Luis Vega", identification="2-0456-0789"))
    vehicle = store.add_entity(Vehicle(plate="BCR123", make="Toyota", model="Hilux", color="Gris"))
    property_ = store.add_entity(Property(
        category="Casa", address="Barrio Escalante, San Jose", owner="Ana Mora",
        latitude=9.9340, longitude=-84.0660,
    ))
    checkpoint = store.add_entity(Location(
        latitude=9.9281, longitude=-84.0907, category="Retén",
        notes="Control vial en Paseo Colón", observed_at=datetime(2024, 3, 2, 14, 30),
    ))
    graph.create_relation("person", person.id, "person", partner.id)
    graph.create_relation("person", person.id, "vehicle", vehicle.id)
    graph.create_relation("vehicle", vehicle.id, "location", checkpoint.id)
    graph.create_relation("person", partner.id, "property", property_.id)
    store.add_observation(person.KIND, person.id, "demo", "Seen driving the Hilux near Paseo Colón")

    created = {
        "person": [person.id, partner.id],
        "vehicle": [vehicle.id],
        "property": [property_.id],
        "location": [checkpoint.id],
    }
    if args.format == "json":
        _print_json(created)
    else:
        for kind, ids in created.items():
            print(f"{kind:<10} {', '.join(str(i) for i in ids)}")
        print(f"\nTry: casegraph-db traverse person {person.id}")


# ============================================================================
# Relation Commands
# ============================================================================

def cmd_relate(store: SQLAlchemyStore, args: argparse.Namespace) -> None:
    """Create a relation between two entities."""
    outcome = RelationGraph(store).create_relation(
        args.kind1, args.id1, args.kind2, args.id2, label=args.label
    )
    k1, k2 = outcome.kinds
    print(f"Related {k1.value}:{args.id1} <-> {k2.value}:{args.id2} (relation {outcome.relation_id})")


def cmd_unrelate(store: SQLAlchemyStore, args: argparse.Namespace) -> None:
    """Remove a relation between two entities."""
    outcome = RelationGraph(store).delete_relation(args.kind1, args.id1, args.kind2, args.id2)
    k1, k2 = outcome.kinds
    if outcome.success:
        print(f"Removed relation {k1.value}:{args.id1} <-> {k2.value}:{args.id2}")
    else:
        print(f"No relation between {k1.value}:{args.id1} and {k2.value}:{args.id2}")


def cmd_neighbors(store: SQLAlchemyStore, args: argparse.Namespace) -> None:
    """Show direct neighbours of an entity grouped by kind."""
    graph = RelationGraph(store)
    kind = graph.normalize_kind(args.kind)
    entity = graph.get_entity(kind, args.entity_id)
    if entity is None:
        print(f"{kind.value} not found: {args.entity_id}")
        sys.exit(1)
    neighbors = graph.neighbors(kind, args.entity_id)

    if args.format == "json":
        _print_json({
            "entity": entity.to_dict(),
            "neighbors": {k.value: [r.to_dict() for r in rel] for k, rel in neighbors.items()},
        })
        return

    print(f"\n{kind.value}:{entity.id}  {entity.label()}\n")
    for k, related in neighbors.items():
        print(f"{k.plural.title()} ({len(related)}):")
        for r in related:
            label = f"  [{r.label}]" if r.label else ""
            print(f"  {r.id:<8} {r.entity.label()}{label}")


def cmd_search(store: SQLAlchemyStore, args: argparse.Namespace) -> None:
    """Search entities by id, natural key or text."""
    result = SearchResolver(store, limit=args.limit).resolve(args.query, args.kinds or None)

    if args.format == "json":
        _print_json(result.to_dict())
        return

    print(f"\n{'Kind':<10} {'ID':<8} {'Match':<10} {'Label':<50}")
    print("-" * 80)
    for kind in result.kinds:
        for m in result.matches.get(kind, []):
            print(f"{kind.value:<10} {m.id:<8} {m.match_type:<10} {m.entity.label()[:48]:<50}")
    print(f"\nTotal: {result.total} matches")


def cmd_traverse(store: SQLAlchemyStore, args: argparse.Namespace) -> None:
    """Expand an entity and list reachable entities and map points."""
    settings = Settings.from_env()
    graph = RelationGraph(store)
    kind = graph.normalize_kind(args.kind)
    entity = graph.get_entity(kind, args.entity_id)
    if entity is None:
        print(f"{kind.value} not found: {args.entity_id}")
        sys.exit(1)

    engine = TraversalEngine(graph, max_workers=args.workers, depth_limit=settings.max_traversal_depth)
    result = engine.expand([(kind, args.entity_id)], max_depth=args.depth)
    points = LocationAggregator(
        graph,
        zero_is_unset=settings.zero_is_unset,
        match_addresses=args.match_addresses or settings.match_addresses,
    ).aggregate(entity, result)

    if args.format == "json":
        _print_json({"traversal": result.to_dict(), "points": [p.to_dict() for p in points]})
        return

    print(f"\nTraversal from {kind.value}:{entity.id} ({entity.label()}), depth {args.depth}\n")
    print(f"{'Depth':<6} {'Node':<16} {'Label':<40} {'Via':<30}")
    print("-" * 95)
    for entry in result.found():
        via = " > ".join(str(h) for h in entry.provenance.via()) or "-"
        print(f"{entry.depth:<6} {str(entry.hop):<16} {entry.entity.label()[:38]:<40} {via[:30]:<30}")

    print(f"\nMap points ({len(points)}):")
    for p in points:
        tag = " (synthetic)" if p.synthetic else ""
        print(f"  {p.key:<16} {p.latitude:>10.5f} {p.longitude:>11.5f}  {p.origin}{tag}")
    if result.partial:
        failed = ", ".join(str(h) for h in result.failed_nodes)
        print(f"\nWarning: partial result, lookups failed for {failed}")


def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="casegraph-db",
        description="casegraph Database CLI - Manage relations, search and traverse case entities",
    )
    parser.add_argument(
        "--db-url",
        default=Settings.from_env().db_url,
        help="Database URL (default: CASEGRAPH_DB_URL or sqlite:///casegraph.db)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # ==================== Schema Commands ====================

    subparsers.add_parser("init", help="Initialize database tables")

    stats = subparsers.add_parser("stats", help="Show database statistics")
    stats.add_argument("--format", choices=["table", "json"], default="table")

    seed = subparsers.add_parser("seed-demo", help="Load a small demo case file")
    seed.add_argument("--format", choices=["table", "json"], default="table")

    # ==================== Relation Commands ====================

    for name, help_text in (("relate", "Relate two entities"), ("unrelate", "Remove a relation")):
        rel = subparsers.add_parser(name, help=help_text)
        rel.add_argument("kind1", help="Kind of the first entity (person, vehicle, property, location)")
        rel.add_argument("id1", type=int, help="Id of the first entity")
        rel.add_argument("kind2", help="Kind of the second entity")
        rel.add_argument("id2", type=int, help="Id of the second entity")
        if name == "relate":
            rel.add_argument("--label", help="Relation label (vehicle-vehicle and property-property only)")

    neighbors = subparsers.add_parser("neighbors", help="Show direct neighbours of an entity")
    neighbors.add_argument("kind", help="Entity kind")
    neighbors.add_argument("entity_id", type=int, help="Entity id")
    neighbors.add_argument("--format", choices=["table", "json"], default="table")

    # ==================== Graph Commands ====================

    search = subparsers.add_parser("search", help="Search entities across kinds")
    search.add_argument("query", help="Search text, identification, plate or id")
    search.add_argument("--kinds", nargs="*", help="Restrict to these kinds")
    search.add_argument("--limit", type=int, default=50, help="Maximum results per kind and strategy")
    search.add_argument("--format", choices=["table", "json"], default="table")

    traverse = subparsers.add_parser("traverse", help="Traverse relations and list map points")
    traverse.add_argument("kind", help="Entity kind")
    traverse.add_argument("entity_id", type=int, help="Entity id")
    traverse.add_argument("--depth", type=int, default=2, help="Maximum hops from the seed")
    traverse.add_argument("--workers", type=int, default=4, help="Parallel neighbour lookups")
    traverse.add_argument("--match-addresses", action="store_true",
                          help="Also include locations whose notes mention an address")
    traverse.add_argument("--format", choices=["table", "json"], default="table")

    return parser


def main(argv=None) -> None:
    """Main entry point for the database CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logger = setup_logging(args.verbose)

    # Create store
    store = get_store(args.db_url)

    # Dispatch to command handler
    commands = {
        "init": cmd_init_db,
        "stats": cmd_stats,
        "seed-demo": cmd_seed_demo,
        "relate": cmd_relate,
        "unrelate": cmd_unrelate,
        "neighbors": cmd_neighbors,
        "search": cmd_search,
        "traverse": cmd_traverse,
    }

    handler = commands.get(args.command)
    if handler:
        try:
            handler(store, args)
        except Exception as e:
            logger.error(f"Command failed: {e}")
            if args.verbose:
                import traceback
                traceback.print_exc()
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
