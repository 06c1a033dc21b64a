# packages/jfk-store/jfk_store/pg.py
from __future__ import annotations

import pathlib
from typing import Callable, Optional

import psycopg
from psycopg.rows import dict_row

from .blob import BlobBackend, build_locator, sha256_bytes, validate_key
from .errors import InvalidInput, StorageUnavailable

# --- Paths & Config ---
SCHEMA_SQL_PATH = pathlib.Path(__file__).with_name("pg_schema.sql")

DEFAULT_TIMEOUT = 30.0


def connect(dsn: str, timeout: float = DEFAULT_TIMEOUT) -> psycopg.Connection:
    # dict_row: cur.fetchone() → {"key": ..., ...}
    # statement_timeout 초과 시 QueryCanceled → StorageUnavailable
    return psycopg.connect(
        dsn,
        row_factory=dict_row,
        connect_timeout=max(1, int(timeout)),
        options=f"-c statement_timeout={int(timeout * 1000)}",
    )


def ensure_schema(conn: psycopg.Connection) -> None:
    sql = SCHEMA_SQL_PATH.read_text(encoding="utf-8")
    with conn.cursor() as cur:
        cur.execute(sql)
    conn.commit()


class PgBlobBackend(BlobBackend):
    """
    PostgreSQL container: one row per object in ``artifact_blob``.

    create_if_absent is a single ``INSERT ... ON CONFLICT DO NOTHING``, so
    two writers racing on one key cannot both win.
    """

    def __init__(
        self,
        dsn: str,
        container: str,
        public_base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        connect_fn: Optional[Callable[..., psycopg.Connection]] = None,
    ):
        if not dsn:
            raise InvalidInput("POSTGRES_DSN is required for the postgres backend")
        if not public_base_url:
            raise InvalidInput("ARTIFACT_PUBLIC_BASE_URL is required for the postgres backend")
        if not container:
            raise InvalidInput("container name is required")
        self.dsn = dsn
        self.container = container
        self.public_base_url = public_base_url
        self.timeout = timeout
        self._connect = connect_fn or connect

    def _open(self) -> psycopg.Connection:
        try:
            return self._connect(self.dsn, self.timeout)
        except psycopg.Error as e:
            raise StorageUnavailable(f"postgres container {self.container!r} unreachable: {e}") from e

    def ensure_schema(self) -> None:
        conn = self._open()
        try:
            ensure_schema(conn)
        except psycopg.Error as e:
            raise StorageUnavailable(f"schema setup failed: {e}") from e
        finally:
            conn.close()

    def create_if_absent(self, key: str, payload: bytes, content_type: str) -> bool:
        validate_key(key)
        conn = self._open()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO artifact_blob (container, key, content_type, payload, size_bytes, sha256)
                    VALUES (%(c)s, %(k)s, %(ct)s, %(p)s, %(sz)s, %(sha)s)
                    ON CONFLICT (container, key) DO NOTHING
                    RETURNING key
                    """,
                    dict(c=self.container, k=key, ct=content_type, p=payload,
                         sz=len(payload), sha=sha256_bytes(payload)),
                )
                row = cur.fetchone()
            conn.commit()
            return row is not None
        except psycopg.Error as e:
            raise StorageUnavailable(f"postgres container {self.container!r} write failed: {e}") from e
        finally:
            conn.close()

    def _fetch(self, key: str, column: str) -> Optional[dict]:
        validate_key(key)
        conn = self._open()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {column} FROM artifact_blob WHERE container=%(c)s AND key=%(k)s",
                    dict(c=self.container, k=key),
                )
                return cur.fetchone()
        except psycopg.Error as e:
            raise StorageUnavailable(f"postgres container {self.container!r} read failed: {e}") from e
        finally:
            conn.close()

    def read(self, key: str) -> bytes:
        row = self._fetch(key, "payload")
        if row is None:
            raise KeyError(key)
        return bytes(row["payload"])

    def content_type(self, key: str) -> Optional[str]:
        row = self._fetch(key, "content_type")
        return row["content_type"] if row else None

    def locator(self, key: str) -> str:
        return build_locator(self.public_base_url, self.container, validate_key(key))
