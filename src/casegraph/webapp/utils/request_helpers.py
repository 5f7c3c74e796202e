"""Request parameter parsing utilities."""

import logging
from typing import List, Optional

from flask import request

from ...errors import InvalidRelation
from ...types.ids import is_entity_id

logger = logging.getLogger(__name__)


def safe_int(value, default=0):
    """
    Safely parse integer from request args, handling binary data and invalid input.

    Args:
        value: Value to parse (typically from request.args.get())
        default: Default value to return if parsing fails

    Returns:
        Parsed integer or default value
    """
    try:
        if value is None or value == "":
            return default
        return int(value)
    except (ValueError, TypeError):
        logger.warning(f"Failed to parse int from value: {repr(value)[:100]}")
        return default


def parse_list_param(val: Optional[str]) -> List[str]:
    """Parse comma-separated string into a list, keeping order."""
    if not val:
        return []
    return [v.strip() for v in val.split(",") if v.strip()]


def parse_bool_param(val: Optional[str]) -> bool:
    return str(val or "").strip().lower() in {"1", "true", "yes", "on"}


def relation_payload() -> dict:
    """
    Read ``{kind1, id1, kind2, id2[, label]}`` from a JSON body or query args.

    Raises:
        InvalidRelation: a field is missing or an id is not a valid entity id
    """
    body = request.get_json(silent=True) or {}
    if not body:
        body = request.args.to_dict()
    missing = [k for k in ("kind1", "id1", "kind2", "id2") if body.get(k) in (None, "")]
    if missing:
        raise InvalidRelation(f"Missing fields: {', '.join(missing)}")
    try:
        id1, id2 = int(body["id1"]), int(body["id2"])
    except (TypeError, ValueError):
        raise InvalidRelation("id1 and id2 must be integers")
    if not (is_entity_id(id1) and is_entity_id(id2)):
        raise InvalidRelation("id1 and id2 must be positive entity ids")
    return {
        "kind1": body["kind1"],
        "id1": id1,
        "kind2": body["kind2"],
        "id2": id2,
        "label": body.get("label") or None,
    }
