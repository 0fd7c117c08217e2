"""Pin token datatypes."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from .utils.time import ms_delta


class TokenErrorCode(str, enum.Enum):
    TOKEN_NOT_FOUND = "token_not_found"
    TOKEN_EXPIRED = "token_expired"
    USER_NOT_FOUND = "user_not_found"
    IDENTIFIER_VALUE_MISMATCH = "identifier_value_mismatch"


@dataclass(frozen=True)
class Identifier:
    """Pointer from a token to the user field/value that owns it."""

    field: str
    value: str

    @classmethod
    def parse(cls, raw: str) -> "Identifier":
        """Split ``"<field>:<value>"`` on the first colon only."""
        field, _, value = raw.partition(":")
        return cls(field=field, value=value)

    def __str__(self) -> str:
        return f"{self.field}:{self.value}"


@dataclass(frozen=True)
class TokenInput:
    """Fields supplied by callers when creating a token.

    ``pin`` may be left out; the store assigns one. ``created_at`` is always
    assigned by the store.
    """

    kind: str
    identifier: str
    data: Optional[Dict[str, Any]] = None
    expires_in_ms: Optional[int] = None
    pin: Optional[str] = None


@dataclass(frozen=True)
class Token:
    pin: str
    kind: str
    identifier: str
    created_at: datetime
    data: Optional[Dict[str, Any]] = None
    expires_in_ms: Optional[int] = None
    # Store-assigned row key; deletes target this record only.
    id: Optional[int] = None

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.expires_in_ms is None:
            return None
        return self.created_at + ms_delta(self.expires_in_ms)


@dataclass(frozen=True)
class TokenError:
    code: TokenErrorCode
    identifier: Optional[Identifier] = None


@dataclass(frozen=True)
class TokenUser:
    """A token's parsed identifier together with the user it resolved to."""

    identifier: Identifier
    user: Dict[str, Any]


@dataclass(frozen=True)
class UserToken:
    user: Dict[str, Any]
    token: Token
