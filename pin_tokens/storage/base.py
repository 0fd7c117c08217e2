"""Abstract storage ports consumed by the token manager."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from ..types import Token, TokenInput


class TokenStore(ABC):
    """Token records reachable by exact-match queries."""

    @abstractmethod
    async def find_one(self, **filters: str) -> Optional[Token]:
        """Return the first token whose fields equal every filter value."""

    @abstractmethod
    async def create(self, token_input: TokenInput) -> Token:
        """Insert a token, assigning ``pin`` if absent and ``created_at``."""

    @abstractmethod
    async def delete_one(self, token: Token) -> None:
        """Delete the stored record for ``token`` (matched by its store id)."""

    async def close(self) -> None:
        """Close storage resources if needed."""


class UserStore(ABC):
    """Read-only user records reachable by a single field-equality filter."""

    id_field: str = "id"

    @abstractmethod
    async def find_one_by_field(self, field: str, value: str) -> Optional[dict[str, Any]]:
        """Return the first user record where ``field`` equals ``value``."""

    async def close(self) -> None:
        """Close storage resources if needed."""
