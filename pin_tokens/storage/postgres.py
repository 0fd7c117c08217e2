"""PostgreSQL token and user stores using ``asyncpg``."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

import asyncpg

from ..pins import PinFactory, generate_pin
from ..types import Token, TokenInput
from .base import TokenStore, UserStore

logger = logging.getLogger(__name__)

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

TOKEN_COLUMNS = ("id", "pin", "kind", "identifier", "data", "expires_in_ms", "created_at")
TOKEN_FILTER_COLUMNS = frozenset({"pin", "kind", "identifier"})

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
    id BIGSERIAL PRIMARY KEY,
    pin TEXT NOT NULL,
    kind TEXT NOT NULL,
    identifier TEXT NOT NULL,
    data JSONB,
    expires_in_ms BIGINT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
ALTER TABLE {table} ADD COLUMN IF NOT EXISTS id BIGSERIAL;
CREATE INDEX IF NOT EXISTS {index_prefix}_pin_kind_idx ON {table} (pin, kind);
CREATE INDEX IF NOT EXISTS {index_prefix}_identifier_kind_idx ON {table} (identifier, kind);
"""


def quote_ident(name: str) -> str:
    """Quote a SQL identifier, rejecting anything but plain names."""
    if not _IDENT_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return f'"{name}"'


class _PooledStore:
    """Shared pool handling; a supplied pool is never closed by the store."""

    def __init__(
        self,
        dsn: Optional[str] = None,
        *,
        pool: Optional[asyncpg.Pool] = None,
        min_size: int = 1,
        max_size: int = 4,
    ) -> None:
        if dsn is None and pool is None:
            raise ValueError("Either `dsn` or `pool` must be provided.")
        self.dsn = dsn
        self.pool = pool
        self._owns_pool = pool is None
        self._min_size = min_size
        self._max_size = max_size

    async def connect(self) -> None:
        if self.pool is None:
            self.pool = await asyncpg.create_pool(dsn=self.dsn, min_size=self._min_size, max_size=self._max_size)

    async def close(self) -> None:
        if self.pool is not None and self._owns_pool:
            await self.pool.close()
            self.pool = None


def _row_to_token(row: Any) -> Token:
    data = row["data"]
    if isinstance(data, str):
        data = json.loads(data)
    return Token(
        pin=row["pin"],
        kind=row["kind"],
        identifier=row["identifier"],
        created_at=row["created_at"],
        data=data,
        expires_in_ms=row["expires_in_ms"],
        id=row["id"],
    )


class PostgresTokenStore(_PooledStore, TokenStore):
    """Postgres-backed token store."""

    def __init__(
        self,
        dsn: Optional[str] = None,
        *,
        pool: Optional[asyncpg.Pool] = None,
        table: str = "pin_tokens",
        pin_factory: PinFactory = generate_pin,
        min_size: int = 1,
        max_size: int = 4,
    ) -> None:
        super().__init__(dsn, pool=pool, min_size=min_size, max_size=max_size)
        self._table_name = table
        self.table = quote_ident(table)
        self._pin_factory = pin_factory

    async def ensure_schema(self) -> None:
        await self.connect()
        assert self.pool is not None
        async with self.pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL.format(table=self.table, index_prefix=self._table_name))

    async def find_one(self, **filters: str) -> Optional[Token]:
        unknown = set(filters) - TOKEN_FILTER_COLUMNS
        if unknown:
            raise ValueError(f"Unsupported token filter(s): {', '.join(sorted(unknown))}")
        clauses = [f"{quote_ident(column)} = ${position}" for position, column in enumerate(filters, start=1)]
        where = " AND ".join(clauses) if clauses else "TRUE"
        await self.connect()
        assert self.pool is not None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {', '.join(TOKEN_COLUMNS)} FROM {self.table} WHERE {where} ORDER BY created_at ASC, id ASC LIMIT 1",
                *filters.values(),
            )
        return _row_to_token(row) if row else None

    async def create(self, token_input: TokenInput) -> Token:
        pin = token_input.pin or self._pin_factory()
        data_json = json.dumps(token_input.data) if token_input.data is not None else None
        await self.connect()
        assert self.pool is not None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO {self.table} (pin, kind, identifier, data, expires_in_ms)
                VALUES ($1, $2, $3, $4::jsonb, $5)
                RETURNING {', '.join(TOKEN_COLUMNS)}
                """,
                pin,
                token_input.kind,
                token_input.identifier,
                data_json,
                token_input.expires_in_ms,
            )
        return _row_to_token(row)

    async def delete_one(self, token: Token) -> None:
        if token.id is None:
            raise ValueError("Cannot delete a token without a store id.")
        await self.connect()
        assert self.pool is not None
        async with self.pool.acquire() as conn:
            await conn.execute(f"DELETE FROM {self.table} WHERE id = $1", token.id)


class PostgresUserStore(_PooledStore, UserStore):
    """Read-only view over an existing users table."""

    def __init__(
        self,
        dsn: Optional[str] = None,
        *,
        pool: Optional[asyncpg.Pool] = None,
        table: str = "users",
        id_field: str = "id",
        min_size: int = 1,
        max_size: int = 4,
    ) -> None:
        super().__init__(dsn, pool=pool, min_size=min_size, max_size=max_size)
        self.table = quote_ident(table)
        quote_ident(id_field)
        self.id_field = id_field

    async def find_one_by_field(self, field: str, value: str) -> Optional[dict[str, Any]]:
        """Match ``field`` against ``value`` by its text form.

        The matched field comes back as text so integer or uuid keys compare
        equal to the identifier value. Field names that cannot be columns
        match nothing.
        """
        try:
            column = quote_ident(field)
        except ValueError:
            logger.debug("Field %r is not a valid column name", field)
            return None
        await self.connect()
        assert self.pool is not None
        async with self.pool.acquire() as conn:
            try:
                row = await conn.fetchrow(f"SELECT * FROM {self.table} WHERE {column}::text = $1 LIMIT 1", value)
            except asyncpg.UndefinedColumnError:
                logger.debug("User table has no column %s", field)
                return None
        if row is None:
            return None
        user = dict(row)
        if user.get(field) is not None:
            user[field] = str(user[field])
        return user
