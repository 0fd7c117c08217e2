"""Pin token lifecycle: issue, validate and retire tokens bound to users."""

from __future__ import annotations

import asyncio
import logging

from .result import Err, Ok, Result
from .storage.base import TokenStore, UserStore
from .types import Identifier, Token, TokenError, TokenErrorCode, TokenInput, TokenUser, UserToken
from .utils.time import Clock, utc_now

logger = logging.getLogger(__name__)


class TokenManager:
    """Compose a token store and a user store into the pin token workflows.

    No locking is done here. Concurrent ``get_or_create`` calls for the same
    identifier and kind may each create a token; readers tolerate duplicates.
    """

    def __init__(self, token_store: TokenStore, user_store: UserStore, *, clock: Clock = utc_now) -> None:
        self.token_store = token_store
        self.user_store = user_store
        self._clock = clock

    def is_expired(self, token: Token) -> bool:
        """Return True once the token's lifetime has elapsed.

        Tokens without ``expires_in_ms`` never expire.
        """
        expires_at = token.expires_at
        if expires_at is None:
            return False
        return expires_at <= self._clock()

    async def create(self, token_input: TokenInput) -> Token:
        """Insert a token without checking for an existing one."""
        token = await self.token_store.create(token_input)
        logger.debug("Created %s token for %s", token.kind, token.identifier)
        return token

    async def get_or_create(self, token_input: TokenInput) -> Token:
        """Return the live token for this identifier and kind, or a new one."""
        existing = await self.token_store.find_one(identifier=token_input.identifier, kind=token_input.kind)
        if existing is None:
            return await self.create(token_input)

        if not self.is_expired(existing):
            return existing

        created, deleted = await asyncio.gather(
            self.create(token_input),
            self.token_store.delete_one(existing),
            return_exceptions=True,
        )
        if isinstance(deleted, BaseException):
            logger.warning(
                "Failed to delete expired %s token for %s: %s",
                existing.kind,
                existing.identifier,
                deleted,
            )
        if isinstance(created, BaseException):
            raise created
        logger.info("Replaced expired %s token for %s", existing.kind, existing.identifier)
        return created

    async def validate_token(self, *, pin: str, kind: str) -> Result[Token, TokenError]:
        """Look up a token by pin; expired tokens are deleted on the way out."""
        token = await self.token_store.find_one(pin=pin, kind=kind)
        if token is None:
            return Err(TokenError(TokenErrorCode.TOKEN_NOT_FOUND))

        if self.is_expired(token):
            await self.token_store.delete_one(token)
            logger.info("Deleted expired %s token for %s", token.kind, token.identifier)
            return Err(TokenError(TokenErrorCode.TOKEN_EXPIRED))

        return Ok(token)

    async def get_token_user(self, token: Token) -> Result[TokenUser, TokenError]:
        """Resolve the user a token points at.

        The identifier is parsed, the user looked up and the matched field
        checked again, since some backends treat an empty filter value as a
        wildcard and hand back an arbitrary record. Failures never delete the
        token, so callers can use this to decide what to do with it.
        """
        identifier = Identifier.parse(token.identifier)
        raw_user = await self.user_store.find_one_by_field(identifier.field, identifier.value)
        if raw_user is None:
            return Err(TokenError(TokenErrorCode.USER_NOT_FOUND, identifier))

        if identifier.field not in raw_user or raw_user[identifier.field] != identifier.value:
            logger.warning("User lookup for %s returned a record with a different value", identifier.field)
            return Err(TokenError(TokenErrorCode.IDENTIFIER_VALUE_MISMATCH, identifier))

        user = dict(raw_user)
        user_id = user.pop(self.user_store.id_field, None)
        return Ok(TokenUser(identifier=identifier, user={"user_id": user_id, **user}))

    async def validate_user_token(self, *, pin: str, kind: str) -> Result[UserToken, TokenError]:
        """Validate a pin and resolve its user; orphaned tokens are deleted."""
        checked = await self.validate_token(pin=pin, kind=kind)
        if not checked.ok:
            return checked
        token = checked.data

        user_check = await self.get_token_user(token)
        if not user_check.ok:
            await self.token_store.delete_one(token)
            logger.info("Deleted %s token with unresolved user (%s)", token.kind, user_check.error.code.value)
            return user_check

        return Ok(UserToken(user=user_check.data.user, token=token))
