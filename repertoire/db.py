"""Database layer for repertoire snapshots."""

from contextlib import contextmanager

import psycopg

from config import get_connection_string


@contextmanager
def get_connection(conninfo: str | None = None):
    """Context manager for database connections."""
    conn = psycopg.connect(conninfo or get_connection_string())
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def ensure_schema(conn: psycopg.Connection) -> None:
    """Create the key/value table if it does not exist."""
    with conn.cursor() as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS repertoire_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
            """
        )


def read_value(conn: psycopg.Connection, key: str) -> str | None:
    with conn.cursor() as cur:
        cur.execute("SELECT value FROM repertoire_store WHERE key = %s", (key,))
        row = cur.fetchone()
    return row[0] if row else None


def write_value(conn: psycopg.Connection, key: str, value: str) -> None:
    """Insert or replace the value stored under key."""
    with conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO repertoire_store (key, value)
            VALUES (%s, %s)
            ON CONFLICT (key) DO UPDATE SET
                value = EXCLUDED.value,
                updated_at = NOW()
            """,
            (key, value),
        )

