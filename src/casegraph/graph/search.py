"""Free-text and identifier search across the four entity kinds."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from ..errors import InvalidQuery
from ..types.ids import parse_entity_id
from ..types.kind import EntityKind, normalize_kinds
from .provenance import Hop


MATCH_ID = "id"
MATCH_EXACT = "exact"
MATCH_SUBSTRING = "substring"


@dataclass
class SearchMatch:
    kind: EntityKind
    entity: Any
    match_type: str

    @property
    def id(self) -> int:
        return self.entity.id

    def to_dict(self) -> Dict[str, Any]:
        data = self.entity.to_dict()
        data["match_type"] = self.match_type
        return data


@dataclass
class SearchResult:
    query: str
    kinds: List[EntityKind]
    matches: Dict[EntityKind, List[SearchMatch]] = field(default_factory=dict)

    def entities(self, kind: EntityKind) -> List[Any]:
        return [m.entity for m in self.matches.get(kind, [])]

    def seeds(self) -> List[Hop]:
        return [Hop(kind, m.id) for kind in self.kinds for m in self.matches.get(kind, [])]

    @property
    def total(self) -> int:
        return sum(len(v) for v in self.matches.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "kinds": [k.value for k in self.kinds],
            "total": self.total,
            "matches": {
                kind.value: [m.to_dict() for m in self.matches.get(kind, [])]
                for kind in self.kinds
            },
        }


class SearchResolver:
    """
    Resolve a search string into matching entities.

    Per kind, three strategies run in order: primary id lookup (when the
    query is a plain in-range integer), exact match on the natural key,
    then substring match on the searchable text fields. An entity found
    by an earlier strategy keeps that match type.
    """

    def __init__(self, store, limit: int = 50, logger: Optional[logging.Logger] = None):
        self.store = store
        self.limit = limit
        self.logger = logger or logging.getLogger(__name__)

    def resolve(self, query: Optional[str],
                kinds: Optional[Iterable[Union[str, EntityKind]]] = None) -> SearchResult:
        text = (query or "").strip()
        if not text:
            raise InvalidQuery("Search text must not be blank")
        wanted = normalize_kinds(kinds)
        entity_id = parse_entity_id(text)

        result = SearchResult(query=text, kinds=wanted)
        for kind in wanted:
            found: List[SearchMatch] = []
            seen = set()

            def take(entities, match_type):
                for entity in entities:
                    if entity is None or entity.id in seen:
                        continue
                    seen.add(entity.id)
                    found.append(SearchMatch(kind, entity, match_type))

            if entity_id is not None:
                take([self.store.get(kind, entity_id)], MATCH_ID)
            take(self.store.matching_exact(kind, text, self.limit), MATCH_EXACT)
            take(self.store.matching_text(kind, text, self.limit), MATCH_SUBSTRING)
            result.matches[kind] = found

        self.logger.info(f"Search '{text}' matched {result.total} entities across {len(wanted)} kinds")
        return result
