"""Environment-driven settings for the repertoire tools."""

import logging
import os
from dataclasses import dataclass
from enum import Enum

from models import STARTING_FEN


class ConflictPolicy(str, Enum):
    """What insert_move does when a move label already leads elsewhere."""

    KEEP_EXISTING = "keep"
    RAISE = "raise"


STORE_KINDS = ("file", "postgres", "memory")


def get_connection_string() -> str:
    """Get database connection string from environment."""
    return os.environ.get(
        "DATABASE_URL",
        "postgresql://localhost:5432/chess_repertoire?user=postgres&password=postgres",
    )


@dataclass
class Settings:
    database_url: str = ""
    store: str = "file"
    store_dir: str = "data/store"
    key: str = "acasRepertoire"
    root_fen: str = STARTING_FEN
    conflict_policy: ConflictPolicy = ConflictPolicy.KEEP_EXISTING
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        store = os.environ.get("REPERTOIRE_STORE", "file").lower()
        if store not in STORE_KINDS:
            raise ValueError(f"REPERTOIRE_STORE must be one of {STORE_KINDS}, got {store!r}")
        return cls(
            database_url=get_connection_string(),
            store=store,
            store_dir=os.environ.get("REPERTOIRE_STORE_DIR", "data/store"),
            key=os.environ.get("REPERTOIRE_KEY", "acasRepertoire"),
            root_fen=os.environ.get("REPERTOIRE_ROOT_FEN", STARTING_FEN),
            conflict_policy=ConflictPolicy(os.environ.get("REPERTOIRE_CONFLICT_POLICY", "keep").lower()),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
