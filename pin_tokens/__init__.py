"""Pin tokens.

Issue, validate and retire short-lived pin tokens that bind a one-time code
to a user identity for a given purpose (email verification, password reset).
"""

from .config import PinTokenConfig
from .manager import TokenManager
from .result import Err, Ok, Result
from .storage import InMemoryTokenStore, InMemoryUserStore, TokenStore, UserStore, create_stores_from_env
from .types import Identifier, Token, TokenError, TokenErrorCode, TokenInput, TokenUser, UserToken

__all__ = [
    "TokenManager",
    "PinTokenConfig",
    "Ok",
    "Err",
    "Result",
    "TokenStore",
    "UserStore",
    "InMemoryTokenStore",
    "InMemoryUserStore",
    "create_stores_from_env",
    "Identifier",
    "Token",
    "TokenError",
    "TokenErrorCode",
    "TokenInput",
    "TokenUser",
    "UserToken",
]
