"""Access and refresh token primitives.

This module handles:
- RSA key management for signing/verification
- Minting short-lived access tokens (RS256 JWTs)
- Validating access tokens
- Generating and digesting opaque refresh tokens
"""

import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError

from taskflow_api.config import jwt_settings

logger = logging.getLogger(__name__)

REFRESH_TOKEN_BYTES = 48


class TokenError(Exception):
    """Base exception for token operations."""

    pass


class TokenExpiredError(TokenError):
    """Token has expired."""

    pass


class TokenInvalidError(TokenError):
    """Token is invalid."""

    pass


@dataclass
class AccessTokenPayload:
    """Payload of an access token."""

    sub: str  # User ID
    iss: str  # Issuer (taskflow-api)
    aud: str  # Audience (taskflow)
    exp: int  # Expiration timestamp
    iat: int  # Issued at timestamp

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "AccessTokenPayload":
        """Create AccessTokenPayload from decoded JWT payload."""
        required = ["sub", "iss", "aud", "exp", "iat"]
        for claim in required:
            if claim not in payload:
                raise TokenInvalidError(f"Token missing required '{claim}' claim")

        return cls(
            sub=payload["sub"],
            iss=payload["iss"],
            aud=payload["aud"],
            exp=payload["exp"],
            iat=payload["iat"],
        )


class TokenManager:
    """Mints and validates access tokens with RSA signing."""

    def __init__(
        self,
        private_key_pem: str | None = None,
        public_key_pem: str | None = None,
        issuer: str = "taskflow-api",
        audience: str = "taskflow",
        access_token_ttl_minutes: int = 15,
        key_id: str | None = None,
    ):
        self.issuer = issuer
        self.audience = audience
        self.access_token_ttl = timedelta(minutes=access_token_ttl_minutes)

        if private_key_pem:
            self._private_key = serialization.load_pem_private_key(
                private_key_pem.encode(), password=None
            )
            if public_key_pem:
                self._public_key = serialization.load_pem_public_key(
                    public_key_pem.encode()
                )
            else:
                self._public_key = self._private_key.public_key()
        else:
            # Tokens do not survive a restart with an ephemeral key
            logger.info("No JWT private key configured, generating ephemeral keypair")
            self._private_key = rsa.generate_private_key(
                public_exponent=65537,
                key_size=2048,
            )
            self._public_key = self._private_key.public_key()

        if key_id:
            self._key_id = key_id
        else:
            public_key_bytes = self._public_key.public_bytes(
                encoding=serialization.Encoding.DER,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )
            self._key_id = hashlib.sha256(public_key_bytes).hexdigest()[:16]

        # Cache PEM representations for jose library
        self._private_key_pem = self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode()

        self._public_key_pem = self._public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode()

    @property
    def key_id(self) -> str:
        return self._key_id

    @property
    def expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return int(self.access_token_ttl.total_seconds())

    def get_jwks(self) -> dict[str, Any]:
        """Public signing key as a JSON Web Key Set."""
        numbers = self._public_key.public_numbers()

        def _b64url(n: int) -> str:
            raw = n.to_bytes((n.bit_length() + 7) // 8, byteorder="big")
            return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

        return {
            "keys": [
                {
                    "kty": "RSA",
                    "use": "sig",
                    "alg": "RS256",
                    "kid": self._key_id,
                    "n": _b64url(numbers.n),
                    "e": _b64url(numbers.e),
                }
            ]
        }

    def create_access_token(self, user_id: str) -> str:
        """Create a signed access token for a user.

        Args:
            user_id: Internal user ID

        Returns:
            Signed JWT string
        """
        now = datetime.now(timezone.utc)
        exp = now + self.access_token_ttl

        payload = {
            "sub": user_id,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
            # Unique per token so two tokens minted in the same second differ
            "jti": secrets.token_hex(8),
        }

        return jwt.encode(
            payload,
            self._private_key_pem,
            algorithm="RS256",
            headers={"kid": self._key_id},
        )

    def validate_token(self, token: str) -> AccessTokenPayload:
        """Validate an access token and return its payload.

        Raises:
            TokenExpiredError: If token has expired
            TokenInvalidError: If token is invalid
        """
        try:
            payload = jwt.decode(
                token,
                self._public_key_pem,
                algorithms=["RS256"],
                issuer=self.issuer,
                audience=self.audience,
                options={
                    "verify_iss": True,
                    "verify_aud": True,
                    "verify_exp": True,
                },
            )
            return AccessTokenPayload.from_dict(payload)

        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JWTClaimsError as e:
            raise TokenInvalidError(f"Invalid token claims: {e}") from e
        except JWTError as e:
            raise TokenInvalidError(f"Invalid token: {e}") from e


def generate_refresh_token() -> str:
    """Generate an opaque refresh token (384 bits of entropy)."""
    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)


def digest_token(token: str) -> str:
    """SHA-256 digest used to store and look up opaque tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# Global token manager instance (created lazily)
_token_manager: TokenManager | None = None


def get_token_manager() -> TokenManager:
    """Get the global token manager instance."""
    global _token_manager
    if _token_manager is None:
        _token_manager = TokenManager(
            private_key_pem=jwt_settings.private_key,
            public_key_pem=jwt_settings.public_key,
            issuer=jwt_settings.issuer,
            audience=jwt_settings.audience,
            access_token_ttl_minutes=jwt_settings.access_token_ttl_minutes,
            key_id=jwt_settings.key_id,
        )
    return _token_manager


def create_access_token(user_id: str) -> str:
    """Convenience function to create an access token."""
    return get_token_manager().create_access_token(user_id)


def validate_token(token: str) -> AccessTokenPayload:
    """Convenience function to validate a token."""
    return get_token_manager().validate_token(token)


def get_jwks() -> dict[str, Any]:
    return get_token_manager().get_jwks()
