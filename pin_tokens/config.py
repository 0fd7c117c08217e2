"""Configuration for pin token storage and pin generation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .pins import DEFAULT_PIN_ALPHABET, DEFAULT_PIN_LENGTH

ENV_PREFIX = "PIN_TOKENS_"


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass
class PinTokenConfig:
    """Settings read from ``PIN_TOKENS_*`` environment variables."""

    dsn: Optional[str] = None
    pin_length: int = DEFAULT_PIN_LENGTH
    pin_alphabet: str = DEFAULT_PIN_ALPHABET
    token_table: str = "pin_tokens"
    user_table: str = "users"
    user_id_field: str = "id"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "PinTokenConfig":
        env = os.environ if env is None else env
        return cls(
            dsn=env.get(f"{ENV_PREFIX}PG_DSN") or env.get("DATABASE_URL") or None,
            pin_length=_env_int(env, f"{ENV_PREFIX}PIN_LENGTH", DEFAULT_PIN_LENGTH),
            pin_alphabet=env.get(f"{ENV_PREFIX}PIN_ALPHABET") or DEFAULT_PIN_ALPHABET,
            token_table=env.get(f"{ENV_PREFIX}TOKEN_TABLE") or "pin_tokens",
            user_table=env.get(f"{ENV_PREFIX}USER_TABLE") or "users",
            user_id_field=env.get(f"{ENV_PREFIX}USER_ID_FIELD") or "id",
        )
