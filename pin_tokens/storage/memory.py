"""In-memory token and user stores."""

from __future__ import annotations

import itertools
from typing import Any, Iterable, Optional

from ..pins import PinFactory, generate_pin
from ..types import Token, TokenInput
from ..utils.time import Clock, utc_now
from .base import TokenStore, UserStore


class InMemoryTokenStore(TokenStore):
    """List-backed token store; lookups return the oldest matching token."""

    def __init__(self, *, pin_factory: PinFactory = generate_pin, clock: Clock = utc_now) -> None:
        self._pin_factory = pin_factory
        self._clock = clock
        self._ids = itertools.count(1)
        self.tokens: list[Token] = []

    async def find_one(self, **filters: str) -> Optional[Token]:
        for token in self.tokens:
            if all(getattr(token, key, None) == value for key, value in filters.items()):
                return token
        return None

    async def create(self, token_input: TokenInput) -> Token:
        token = Token(
            pin=token_input.pin or self._pin_factory(),
            kind=token_input.kind,
            identifier=token_input.identifier,
            created_at=self._clock(),
            data=dict(token_input.data) if token_input.data is not None else None,
            expires_in_ms=token_input.expires_in_ms,
            id=next(self._ids),
        )
        self.tokens.append(token)
        return token

    async def delete_one(self, token: Token) -> None:
        for index, stored in enumerate(self.tokens):
            if stored.id == token.id:
                del self.tokens[index]
                return


class InMemoryUserStore(UserStore):
    """List-backed user store."""

    def __init__(self, users: Iterable[dict[str, Any]] = (), *, id_field: str = "id") -> None:
        self.id_field = id_field
        self.users: list[dict[str, Any]] = [dict(user) for user in users]

    def add(self, user: dict[str, Any]) -> None:
        self.users.append(dict(user))

    async def find_one_by_field(self, field: str, value: str) -> Optional[dict[str, Any]]:
        for user in self.users:
            if field in user and user[field] == value:
                return dict(user)
        return None
