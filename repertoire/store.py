"""
Key/value string stores used for whole-repertoire snapshots.

Every store exposes `get(key) -> str | None` and `set(key, value) -> bool`.
I/O failures are logged and reported as a missing value or a failed write.
"""

import logging
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import psycopg

from config import Settings
from db import ensure_schema, get_connection, read_value, write_value

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> bool: ...


class MemoryStore:
    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> bool:
        self._data[key] = value
        return True


class FileStore:
    """One UTF-8 file per key inside a directory."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        # Percent-encoding keeps distinct keys in distinct files.
        return self.directory / f"{quote(key, safe='')}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Error reading %s: %s", path, e)
            return None

    def set(self, key: str, value: str) -> bool:
        path = self.path_for(key)
        tmp = path.with_suffix(".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp.write_text(value, encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            logger.error("Error writing %s: %s", path, e)
            return False
        return True


class PostgresStore:
    """Snapshots in the repertoire_store table."""

    def __init__(self, conninfo: str | None = None, create_schema: bool = True):
        self.conninfo = conninfo
        self._schema_ready = not create_schema

    def _prepare(self, conn) -> None:
        if not self._schema_ready:
            ensure_schema(conn)
            self._schema_ready = True

    def get(self, key: str) -> str | None:
        try:
            with get_connection(self.conninfo) as conn:
                self._prepare(conn)
                return read_value(conn, key)
        except psycopg.Error as e:
            logger.error("Error loading %s from database: %s", key, e)
            return None

    def set(self, key: str, value: str) -> bool:
        try:
            with get_connection(self.conninfo) as conn:
                self._prepare(conn)
                write_value(conn, key, value)
        except psycopg.Error as e:
            logger.error("Error saving %s to database: %s", key, e)
            return False
        return True


def build_store(settings: Settings) -> KeyValueStore:
    if settings.store == "postgres":
        return PostgresStore(settings.database_url)
    if settings.store == "memory":
        return MemoryStore()
    return FileStore(settings.store_dir)
