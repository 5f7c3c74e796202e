import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _as_bool(val: Optional[str], default: bool = False) -> bool:
    if val is None:
        return default
    return str(val).lower() in {"1", "true", "yes", "y", "on"}


def _as_list(val: Optional[str]) -> List[str]:
    if not val:
        return []
    return [v.strip() for v in val.split(",") if v.strip()]


def _as_int(val: Optional[str], default: int) -> int:
    if val is None or str(val).strip() == "":
        return default
    return int(val)


@dataclass
class Settings:
    db_url: str = "sqlite:///casegraph.db"
    api_key: Optional[str] = None
    cors_origins: List[str] = None
    debug: bool = False
    log_level: str = "INFO"

    # Traversal bounds
    default_depth: int = 2
    max_traversal_depth: int = 4  # hard ceiling for ?depth=N requests
    traversal_workers: int = 4  # 1 runs neighbour lookups inline

    # Search
    search_limit: int = 50  # per kind and per match strategy

    # Map aggregation
    zero_is_unset: bool = True  # treat the (0, 0) pair as "no coordinates"
    match_addresses: bool = False  # join locations whose notes mention an address

    def __post_init__(self):
        if self.cors_origins is None:
            self.cors_origins = ["*"]

    @classmethod
    def from_env(cls) -> "Settings":
        cors_val = os.environ.get("CASEGRAPH_CORS_ORIGINS", "*")
        cors_origins = ["*"] if cors_val.strip() == "*" else _as_list(cors_val)
        return cls(
            db_url=os.environ.get("CASEGRAPH_DB_URL")
            or os.environ.get("DATABASE_URL")
            or "sqlite:///casegraph.db",
            api_key=os.environ.get("CASEGRAPH_API_KEY") or None,
            cors_origins=cors_origins,
            debug=_as_bool(os.environ.get("CASEGRAPH_DEBUG"), False),
            log_level=os.environ.get("CASEGRAPH_LOG_LEVEL", "INFO").upper(),
            default_depth=_as_int(os.environ.get("CASEGRAPH_DEFAULT_DEPTH"), 2),
            max_traversal_depth=_as_int(os.environ.get("CASEGRAPH_MAX_DEPTH"), 4),
            traversal_workers=_as_int(os.environ.get("CASEGRAPH_TRAVERSAL_WORKERS"), 4),
            search_limit=_as_int(os.environ.get("CASEGRAPH_SEARCH_LIMIT"), 50),
            zero_is_unset=_as_bool(os.environ.get("CASEGRAPH_ZERO_IS_UNSET"), True),
            match_addresses=_as_bool(os.environ.get("CASEGRAPH_MATCH_ADDRESSES"), False),
        )

    def to_dict(self) -> dict:
        data = dict(self.__dict__)
        if data.get("api_key"):
            data["api_key"] = "***"
        return data
