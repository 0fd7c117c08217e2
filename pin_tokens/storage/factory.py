"""Pick token/user store backends from configuration."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import PinTokenConfig
from ..pins import pin_factory
from .base import TokenStore, UserStore
from .memory import InMemoryTokenStore, InMemoryUserStore

logger = logging.getLogger(__name__)


def create_stores_from_env(config: Optional[PinTokenConfig] = None) -> tuple[TokenStore, UserStore]:
    """Create Postgres stores if a DSN is configured, otherwise in-memory."""
    config = config or PinTokenConfig.from_env()
    pins = pin_factory(config.pin_length, config.pin_alphabet)
    if config.dsn:
        from .postgres import PostgresTokenStore, PostgresUserStore

        logger.info("Using Postgres pin token storage (table %s)", config.token_table)
        return (
            PostgresTokenStore(config.dsn, table=config.token_table, pin_factory=pins),
            PostgresUserStore(config.dsn, table=config.user_table, id_field=config.user_id_field),
        )
    logger.info("No DSN configured; using in-memory pin token storage")
    return InMemoryTokenStore(pin_factory=pins), InMemoryUserStore(id_field=config.user_id_field)
