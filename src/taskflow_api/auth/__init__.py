"""Authentication module for Taskflow API.

Token types:
- Access tokens: short-lived RS256 JWTs sent as ``Authorization: Bearer``
- Refresh tokens: long-lived opaque strings exchanged at /auth/refresh
"""

from taskflow_api.auth.dependencies import get_current_user, get_token
from taskflow_api.auth.passwords import hash_password, verify_password
from taskflow_api.auth.tokens import (
    AccessTokenPayload,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    TokenManager,
    create_access_token,
    digest_token,
    generate_refresh_token,
    get_jwks,
    get_token_manager,
    validate_token,
)

__all__ = [
    # Dependencies
    "get_current_user",
    "get_token",
    # Passwords
    "hash_password",
    "verify_password",
    # Tokens
    "AccessTokenPayload",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenManager",
    "create_access_token",
    "digest_token",
    "generate_refresh_token",
    "get_jwks",
    "get_token_manager",
    "validate_token",
]
