"""Entity id bounds shared by every lookup path."""

from typing import Any, Optional

# Largest value an INTEGER primary key column can hold.
MAX_ENTITY_ID = 2 ** 63 - 1


def is_entity_id(value: Any) -> bool:
    """True for an ``int`` that can name a stored row."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 < value <= MAX_ENTITY_ID


def parse_entity_id(text: Any) -> Optional[int]:
    """
    Primary key spelled by ``text``, or None.

    Only plain ASCII decimal strings within the key range qualify; superscripts,
    other scripts' digits and oversized numbers are left to text matching.
    """
    if isinstance(text, int) and not isinstance(text, bool):
        return text if is_entity_id(text) else None
    candidate = str(text or "").strip()
    if not (candidate.isascii() and candidate.isdecimal()):
        return None
    value = int(candidate)
    return value if is_entity_id(value) else None
