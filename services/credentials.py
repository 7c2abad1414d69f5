"""
Password hashing and session token issuance.

Passwords are hashed with bcrypt using a per-hash random salt. Session tokens
are HS256 JWTs carrying the account id as ``sub`` and an ``exp`` claim; the
server keeps no session table.
"""

import time
from datetime import timedelta
from typing import Optional, Union

import bcrypt
import structlog
from authlib.jose import JoseError, JsonWebToken

logger = structlog.get_logger(__name__)

DEFAULT_ROUNDS = 10

# bcrypt only uses the first 72 bytes; newer releases raise on longer input
BCRYPT_MAX_BYTES = 72


def _password_bytes(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:BCRYPT_MAX_BYTES]


class CredentialError(Exception):
    """Base class for credential failures."""


class HashingError(CredentialError):
    """Password could not be hashed."""


class VerificationError(CredentialError):
    """Password comparison could not be performed."""


class TokenIssueError(CredentialError):
    """Session token could not be signed."""


class TokenError(CredentialError):
    """Session token is malformed, badly signed or expired."""


class CredentialService:
    """
    Stateless credential primitives.

    Args:
        secret: Process-wide signing key for session tokens
        algorithm: HMAC algorithm used to sign tokens
        rounds: bcrypt cost factor
    """

    def __init__(self, secret: str, algorithm: str = "HS256", rounds: int = DEFAULT_ROUNDS):
        self.secret = secret
        self.algorithm = algorithm
        self.rounds = rounds
        self._jwt = JsonWebToken([algorithm])

    def hash_password(self, plaintext: str) -> str:
        """
        Hash a password with a freshly generated salt.

        Raises:
            HashingError: If the password cannot be hashed
        """
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(_password_bytes(plaintext), salt).decode("utf-8")
        except (AttributeError, TypeError, ValueError) as e:
            logger.error("Error during password hashing", error=str(e))
            raise HashingError("Failed to hash password.") from e

    def verify_password(self, plaintext: str, hashed: str) -> bool:
        """
        Check a password against a stored hash.

        Raises:
            VerificationError: If the stored hash is unusable
        """
        try:
            return bcrypt.checkpw(_password_bytes(plaintext), hashed.encode("utf-8"))
        except (AttributeError, TypeError, ValueError) as e:
            logger.error("Error during password verification", error=str(e))
            raise VerificationError("Failed to verify password.") from e

    def issue_token(self, account_id: str, ttl: Union[int, timedelta]) -> str:
        """
        Sign a session token for an account.

        Args:
            account_id: Identity embedded as the ``sub`` claim
            ttl: Lifetime in seconds or as a timedelta

        Returns:
            Compact JWT string

        Raises:
            TokenIssueError: If the token cannot be signed
        """
        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())
        if not self.secret:
            raise TokenIssueError("Token signing secret is not configured.")
        if not account_id or ttl <= 0:
            raise TokenIssueError("Token requires an account id and a positive lifetime.")

        now = int(time.time())
        payload = {"sub": str(account_id), "iat": now, "exp": now + ttl}
        try:
            token = self._jwt.encode({"alg": self.algorithm, "typ": "JWT"}, payload, self.secret)
        except (JoseError, ValueError, TypeError) as e:
            logger.error("Error during token generation", account_id=str(account_id), error=str(e))
            raise TokenIssueError("Failed to issue session token.") from e
        return token.decode("utf-8") if isinstance(token, bytes) else token

    def decode_token(self, token: str, now: Optional[int] = None) -> str:
        """
        Verify a session token and return the account id it carries.

        Args:
            token: Compact JWT string
            now: Override for the current UNIX time

        Raises:
            TokenError: If the token is malformed, badly signed or expired
        """
        if not token:
            raise TokenError("Token is missing.")
        try:
            claims = self._jwt.decode(
                token,
                self.secret,
                claims_options={"sub": {"essential": True}, "exp": {"essential": True}},
            )
            claims.validate(now=now, leeway=0)
        except (JoseError, ValueError, TypeError) as e:
            raise TokenError(f"Invalid or expired token: {e}") from e
        return claims["sub"]
