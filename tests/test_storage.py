import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import pytest

from pin_tokens import (
    InMemoryTokenStore,
    InMemoryUserStore,
    PinTokenConfig,
    Token,
    TokenErrorCode,
    TokenInput,
    TokenManager,
    create_stores_from_env,
)
from pin_tokens.storage import PostgresTokenStore, PostgresUserStore
from pin_tokens.storage.postgres import quote_ident

CREATED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


class RecordingConnection:
    def __init__(self, rows=()) -> None:
        self.rows = list(rows)
        self.calls: list[tuple[str, tuple]] = []

    async def execute(self, sql: str, *args):
        self.calls.append((sql, args))
        return "DELETE 1"

    async def fetchrow(self, sql: str, *args):
        self.calls.append((sql, args))
        return self.rows.pop(0) if self.rows else None


class RecordingPool:
    def __init__(self, conn: RecordingConnection) -> None:
        self.conn = conn

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


def test_in_memory_token_store_assigns_pin_and_matches_exactly() -> None:
    async def run() -> None:
        store = InMemoryTokenStore()
        token = await store.create(TokenInput(kind="verify", identifier="email:a@b.com"))
        explicit = await store.create(TokenInput(kind="verify", identifier="email:c@d.com", pin="999999"))

        assert len(token.pin) == 6 and token.pin.isdigit()
        assert explicit.pin == "999999"
        assert await store.find_one(identifier="email:a@b.com", kind="verify") == token
        assert await store.find_one(identifier="email:a@b.com", kind="reset") is None
        assert await store.find_one(pin="999999", kind="verify") == explicit

    asyncio.run(run())


def test_in_memory_token_store_delete_one_removes_only_that_token() -> None:
    async def run() -> None:
        store = InMemoryTokenStore()
        first = await store.create(TokenInput(kind="verify", identifier="email:a@b.com", pin="111111"))
        second = await store.create(TokenInput(kind="reset", identifier="email:a@b.com", pin="111111"))

        await store.delete_one(first)
        await store.delete_one(first)

        assert store.tokens == [second]

    asyncio.run(run())


def test_in_memory_user_store_requires_the_field_to_exist() -> None:
    async def run() -> None:
        users = InMemoryUserStore([{"id": "u1", "email": "a@b.com"}])
        users.add({"id": "u2", "phone": "555"})

        assert await users.find_one_by_field("email", "a@b.com") == {"id": "u1", "email": "a@b.com"}
        assert await users.find_one_by_field("phone", "555") == {"id": "u2", "phone": "555"}
        assert await users.find_one_by_field("email", "") is None
        assert await users.find_one_by_field("username", "a@b.com") is None

    asyncio.run(run())


def test_create_stores_from_env_defaults_to_memory() -> None:
    token_store, user_store = create_stores_from_env(PinTokenConfig(pin_length=4, user_id_field="_id"))

    assert isinstance(token_store, InMemoryTokenStore)
    assert isinstance(user_store, InMemoryUserStore)
    assert user_store.id_field == "_id"

    async def run() -> None:
        token = await token_store.create(TokenInput(kind="verify", identifier="email:a@b.com"))
        assert len(token.pin) == 4

    asyncio.run(run())


def test_create_stores_from_env_uses_postgres_when_dsn_set() -> None:
    config = PinTokenConfig(dsn="postgresql://localhost/pins", user_table="accounts", user_id_field="account_id")
    token_store, user_store = create_stores_from_env(config)

    assert isinstance(token_store, PostgresTokenStore)
    assert isinstance(user_store, PostgresUserStore)
    assert token_store.table == '"pin_tokens"'
    assert user_store.table == '"accounts"'
    assert user_store.id_field == "account_id"
    assert token_store.pool is None


def test_quote_ident_rejects_injection() -> None:
    assert quote_ident("email") == '"email"'
    with pytest.raises(ValueError):
        quote_ident('email" OR 1=1 --')
    with pytest.raises(ValueError):
        PostgresUserStore("postgresql://localhost/pins", table="users; DROP TABLE users")


def test_postgres_stores_validate_before_connecting() -> None:
    async def run() -> None:
        tokens = PostgresTokenStore("postgresql://localhost/pins")
        users = PostgresUserStore("postgresql://localhost/pins")

        with pytest.raises(ValueError):
            await tokens.find_one(data="x")
        assert await users.find_one_by_field("bad field", "x") is None
        assert await users.find_one_by_field("", "x") is None
        assert tokens.pool is None
        assert users.pool is None

    asyncio.run(run())


def test_postgres_store_requires_dsn_or_pool() -> None:
    with pytest.raises(ValueError):
        PostgresTokenStore()


def test_unusable_user_field_is_user_not_found_and_token_is_consumed() -> None:
    async def run() -> None:
        tokens = InMemoryTokenStore()
        users = PostgresUserStore("postgresql://localhost/pins")
        manager = TokenManager(tokens, users)
        token = await manager.create(TokenInput(kind="verify", identifier="e-mail:a@b.com"))

        result = await manager.validate_user_token(pin=token.pin, kind="verify")

        assert result.ok is False
        assert result.error.code is TokenErrorCode.USER_NOT_FOUND
        assert result.error.identifier.field == "e-mail"
        assert tokens.tokens == []
        assert users.pool is None

    asyncio.run(run())


def test_postgres_token_store_deletes_by_row_id() -> None:
    async def run() -> None:
        row = {
            "id": 7,
            "pin": "111111",
            "kind": "verify",
            "identifier": "email:a@b.com",
            "data": '{"next": "/welcome"}',
            "expires_in_ms": 1000,
            "created_at": CREATED_AT,
        }
        conn = RecordingConnection([row])
        store = PostgresTokenStore(pool=RecordingPool(conn))

        token = await store.find_one(pin="111111", kind="verify")
        assert token.id == 7
        assert token.data == {"next": "/welcome"}

        await store.delete_one(token)
        sql, args = conn.calls[-1]
        assert "WHERE id = $1" in sql
        assert "pin =" not in sql
        assert args == (7,)

    asyncio.run(run())


def test_postgres_token_store_refuses_delete_without_id() -> None:
    async def run() -> None:
        conn = RecordingConnection()
        store = PostgresTokenStore(pool=RecordingPool(conn))
        unsaved = Token(pin="1", kind="verify", identifier="email:a@b.com", created_at=CREATED_AT)

        with pytest.raises(ValueError):
            await store.delete_one(unsaved)
        assert conn.calls == []

    asyncio.run(run())


def test_postgres_user_store_matches_non_text_keys_by_text() -> None:
    async def run() -> None:
        conn = RecordingConnection([{"id": 42, "email": "a@b.com"}])
        users = PostgresUserStore(pool=RecordingPool(conn))
        manager = TokenManager(InMemoryTokenStore(), users)
        token = await manager.create(TokenInput(kind="verify", identifier="id:42"))

        result = await manager.get_token_user(token)

        sql, args = conn.calls[-1]
        assert '"id"::text = $1' in sql
        assert args == ("42",)
        assert result.ok is True
        assert result.data.user == {"user_id": "42", "email": "a@b.com"}

    asyncio.run(run())
