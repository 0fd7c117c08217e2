"""Storage ports and adapters for pin tokens and users."""

from .base import TokenStore, UserStore
from .factory import create_stores_from_env
from .memory import InMemoryTokenStore, InMemoryUserStore

__all__ = [
    "TokenStore",
    "UserStore",
    "InMemoryTokenStore",
    "InMemoryUserStore",
    "PostgresTokenStore",
    "PostgresUserStore",
    "create_stores_from_env",
]


def __getattr__(name: str):
    if name in {"PostgresTokenStore", "PostgresUserStore"}:
        from . import postgres

        return getattr(postgres, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
