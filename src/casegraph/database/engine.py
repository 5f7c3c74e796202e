import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy import create_engine, select, func, or_, and_, delete, cast, String
from sqlalchemy.exc import InterfaceError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import EntityNotFound, InvalidRelation, StoreUnavailable
from ..types.ids import is_entity_id
from ..types.kind import EntityKind
from .models import Base, ENTITY_MODELS, Location, Observation, Person
from .relations import RelationTable, all_tables, table_for
from .store import EntityStore, RelationStore


# Columns scanned by case-insensitive substring search, per kind.
TEXT_FIELDS: Dict[EntityKind, Tuple[str, ...]] = {
    EntityKind.PERSON: ("name", "identification"),
    EntityKind.VEHICLE: ("plate", "make", "model", "category"),
    EntityKind.PROPERTY: ("category", "address", "owner"),
    EntityKind.LOCATION: ("category", "notes"),
}

# Natural key used for exact identifier matches.
NATURAL_KEYS: Dict[EntityKind, str] = {
    EntityKind.PERSON: "identification",
    EntityKind.VEHICLE: "plate",
}

_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.rstrip("/") == "sqlite:")


class SQLAlchemyStore(EntityStore, RelationStore):
    """Entity and relation storage backed by SQLAlchemy.

    Every public method opens its own short-lived session, so one store can be
    shared by concurrent requests and traversal worker threads.
    """

    def __init__(self, url: str = "sqlite:///casegraph.db", logger: Optional[logging.Logger] = None):
        self.url = url
        options: Dict[str, Any] = {}
        if url.startswith("sqlite"):
            # Traversal lookups run on worker threads
            options["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(url):
            # One shared connection, otherwise each thread sees an empty database
            options["poolclass"] = StaticPool
        self.engine = create_engine(url, future=True, **options)
        self.logger = logger or logging.getLogger(__name__)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(self.engine, expire_on_commit=False, future=True)

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        try:
            with self.Session() as s:
                yield s
        except _UNAVAILABLE_ERRORS as e:
            self.logger.error(f"{action} failed: {e}")
            raise StoreUnavailable(f"{action} failed: database unavailable", cause=e) from e

    # -------- Entities --------
    def get(self, kind: EntityKind, entity_id: int) -> Optional[Any]:
        entity_id = int(entity_id)
        if not is_entity_id(entity_id):
            return None
        model = ENTITY_MODELS[kind]
        with self._session(f"get {kind.value}") as s:
            return s.get(model, entity_id)

    def get_many(self, kind: EntityKind, entity_ids: Iterable[int]) -> Dict[int, Any]:
        ids = {int(i) for i in entity_ids if is_entity_id(int(i))}
        if not ids:
            return {}
        model = ENTITY_MODELS[kind]
        with self._session(f"get {kind.value} batch") as s:
            rows = s.execute(select(model).where(model.id.in_(ids))).scalars().all()
            return {row.id: row for row in rows}

    def matching_text(self, kind: EntityKind, pattern: str, limit: int = 50) -> List[Any]:
        needle = (pattern or "").strip().lower()
        if not needle:
            return []
        model = ENTITY_MODELS[kind]
        like = f"%{_escape_like(needle)}%"
        conditions = [
            func.lower(getattr(model, field)).like(like, escape="\\")
            for field in TEXT_FIELDS[kind]
        ]
        if kind == EntityKind.PERSON:
            conditions.append(func.lower(cast(Person.aliases, String)).like(like, escape="\\"))
        stmt = select(model).where(or_(*conditions)).order_by(model.id).limit(limit)
        with self._session(f"text search {kind.value}") as s:
            return list(s.execute(stmt).scalars().all())

    def matching_exact(self, kind: EntityKind, code: str, limit: int = 50) -> List[Any]:
        field = NATURAL_KEYS.get(kind)
        needle = (code or "").strip().lower()
        if not field or not needle:
            return []
        model = ENTITY_MODELS[kind]
        column = getattr(model, field)
        stmt = (
            select(model)
            .where(func.lower(func.trim(column)) == needle)
            .order_by(model.id)
            .limit(limit)
        )
        with self._session(f"exact search {kind.value}") as s:
            return list(s.execute(stmt).scalars().all())

    def observations_for(self, kind: EntityKind, entity_id: int, limit: int = 20) -> List[Observation]:
        stmt = (
            select(Observation)
            .where(Observation.kind == kind.value, Observation.entity_id == int(entity_id))
            .order_by(Observation.created_at.desc(), Observation.id.desc())
            .limit(limit)
        )
        with self._session("observations") as s:
            return list(s.execute(stmt).scalars().all())

    def locations_mentioning(self, text: str, category: Optional[str] = None,
                             limit: int = 50) -> List[Location]:
        needle = (text or "").strip().lower()
        if not needle:
            return []
        stmt = select(Location).where(
            func.lower(Location.notes).like(f"%{_escape_like(needle)}%", escape="\\")
        )
        if category:
            stmt = stmt.where(func.lower(Location.category) == category.strip().lower())
        stmt = stmt.order_by(Location.id).limit(limit)
        with self._session("address match") as s:
            return list(s.execute(stmt).scalars().all())

    # Creation helpers for the CLI and fixtures; regular CRUD lives elsewhere.
    def add_entity(self, entity: Any) -> Any:
        with self._session(f"add {entity.KIND.value}") as s:
            s.add(entity)
            s.commit()
            return entity

    def add_observation(self, kind: EntityKind, entity_id: int, author: str, detail: str) -> Observation:
        obs = Observation(kind=kind.value, entity_id=int(entity_id), author=author, detail=detail)
        with self._session("add observation") as s:
            s.add(obs)
            s.commit()
            return obs

    def delete_entity(self, kind: EntityKind, entity_id: int) -> bool:
        """Delete an entity row only, leaving its relation rows in place."""
        model = ENTITY_MODELS[kind]
        with self._session(f"delete {kind.value}") as s:
            result = s.execute(delete(model).where(model.id == int(entity_id)))
            s.commit()
            return (result.rowcount or 0) > 0

    # -------- Relations --------
    def add(self, kind_a: EntityKind, id_a: int, kind_b: EntityKind, id_b: int,
            label: Optional[str] = None) -> int:
        """
        Persist an undirected relation and return its row id.

        Re-adding an existing edge (in either column order) returns the
        existing row instead of inserting a duplicate.

        Raises:
            InvalidRelation: self relation, or a label on an unlabelled table
            EntityNotFound: an endpoint does not exist
        """
        id_a, id_b = int(id_a), int(id_b)
        table = table_for(kind_a, kind_b)
        if kind_a == kind_b and id_a == id_b:
            raise InvalidRelation(f"A {kind_a.value} cannot be related to itself")
        if label and not table.labelled:
            raise InvalidRelation(f"{table.name} relations do not carry a label")

        with self._session(f"add {table.name}") as s:
            for kind, eid in ((kind_a, id_a), (kind_b, id_b)):
                if not is_entity_id(eid) or s.get(ENTITY_MODELS[kind], eid) is None:
                    raise EntityNotFound(kind, eid)

            existing = s.execute(
                select(table.model).where(self._edge_condition(table, kind_a, id_a, kind_b, id_b)).limit(1)
            ).scalars().first()
            if existing is not None:
                if label and existing.label != label:
                    existing.label = label
                    s.commit()
                return existing.id

            values = self._row_values(table, kind_a, id_a, kind_b, id_b)
            if table.labelled:
                values["label"] = label
            row = table.model(**values)
            s.add(row)
            s.commit()
            self.logger.info(
                f"Related {kind_a.value}:{id_a} <-> {kind_b.value}:{id_b} in {table.name} (row {row.id})"
            )
            return row.id

    def remove(self, kind_a: EntityKind, id_a: int, kind_b: EntityKind, id_b: int) -> bool:
        """Delete a relation in either column order. Missing relations return False."""
        id_a, id_b = int(id_a), int(id_b)
        table = table_for(kind_a, kind_b)
        if not (is_entity_id(id_a) and is_entity_id(id_b)):
            return False
        with self._session(f"remove {table.name}") as s:
            result = s.execute(
                delete(table.model).where(self._edge_condition(table, kind_a, id_a, kind_b, id_b))
            )
            s.commit()
            removed = result.rowcount or 0
        if removed:
            self.logger.info(f"Removed {removed} row(s) from {table.name} for "
                             f"{kind_a.value}:{id_a} <-> {kind_b.value}:{id_b}")
        return removed > 0

    def neighbors_of(self, kind: EntityKind, entity_id: int,
                     of_kind: EntityKind) -> List[Tuple[int, Optional[str]]]:
        """
        Ids of ``of_kind`` entities related to ``(kind, entity_id)``.

        Same-kind tables are read in both column orders and merged; a self
        pair left behind by a bad insert is dropped. Ids are returned in row
        order without duplicates, paired with the relation label (or None).
        """
        entity_id = int(entity_id)
        table = table_for(kind, of_kind)
        found: List[Tuple[int, Optional[str]]] = []
        if not is_entity_id(entity_id):
            return found
        seen = set()
        with self._session(f"neighbors {table.name}") as s:
            for own, other in table.orientations(kind):
                columns = [table.column(other)]
                if table.labelled:
                    columns.append(table.model.label)
                stmt = select(*columns).where(table.column(own) == entity_id).order_by(table.model.id)
                for row in s.execute(stmt):
                    other_id = row[0]
                    if table.same_kind and other_id == entity_id:
                        continue
                    if other_id in seen:
                        continue
                    seen.add(other_id)
                    found.append((other_id, row[1] if table.labelled else None))
        return found

    def has_neighbors(self, kind: EntityKind, entity_id: int, of_kind: EntityKind) -> bool:
        """
        Whether ``(kind, entity_id)`` has at least one live ``of_kind`` neighbour.

        Rows whose other endpoint no longer exists, and self pairs in
        same-kind tables, are ignored just as ``neighbors_of`` drops them.
        """
        entity_id = int(entity_id)
        if not is_entity_id(entity_id):
            return False
        table = table_for(kind, of_kind)
        other_model = ENTITY_MODELS[of_kind]
        with self._session(f"probe {table.name}") as s:
            for own, other in table.orientations(kind):
                stmt = (
                    select(table.model.id)
                    .join(other_model, other_model.id == table.column(other))
                    .where(table.column(own) == entity_id)
                )
                if table.same_kind:
                    stmt = stmt.where(table.column(other) != entity_id)
                if s.execute(stmt.limit(1)).first() is not None:
                    return True
        return False

    def _edge_condition(self, table: RelationTable, kind_a: EntityKind, id_a: int,
                        kind_b: EntityKind, id_b: int):
        if table.same_kind:
            left, right = table.column(table.left_column), table.column(table.right_column)
            return or_(and_(left == id_a, right == id_b), and_(left == id_b, right == id_a))
        own, other = table.orient(kind_a)
        return and_(table.column(own) == id_a, table.column(other) == id_b)

    def _row_values(self, table: RelationTable, kind_a: EntityKind, id_a: int,
                    kind_b: EntityKind, id_b: int) -> Dict[str, int]:
        if table.same_kind:
            return {table.left_column: id_a, table.right_column: id_b}
        own, other = table.orient(kind_a)
        return {own: id_a, other: id_b}

    # -------- Stats --------
    def stats(self) -> Dict[str, Dict[str, int]]:
        with self._session("stats") as s:
            entities = {
                kind.value: s.execute(select(func.count()).select_from(model)).scalar_one()
                for kind, model in ENTITY_MODELS.items()
            }
            relations = {
                t.name: s.execute(select(func.count()).select_from(t.model)).scalar_one()
                for t in all_tables()
            }
            observations = s.execute(select(func.count()).select_from(Observation)).scalar_one()
        return {"entities": entities, "relations": relations, "observations": {"total": observations}}
