"""
Account signup, login and logout.
"""

import asyncio
from typing import Any, Dict

import structlog
from pymongo.errors import DuplicateKeyError

from store import RecordKind, RecordStore
from utilities.logger import OperationLogger

from .credentials import CredentialService
from .errors import (
    AccountNotFoundError,
    InternalError,
    InvalidCredentialsError,
    ServiceError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

LOGIN_TOKEN_TTL_SECONDS = 3600


def sanitize_account(record: Dict[str, Any]) -> Dict[str, Any]:
    """Public view of an account, without the password hash."""
    return {
        "id": record["id"],
        "userName": record.get("display_name"),
        "email": record["email"],
    }


class AccountService:
    """Creates accounts and exchanges credentials for session tokens."""

    def __init__(
        self,
        records: RecordStore,
        credentials: CredentialService,
        token_ttl_seconds: int = LOGIN_TOKEN_TTL_SECONDS,
    ):
        self.records = records
        self.credentials = credentials
        self.token_ttl_seconds = token_ttl_seconds

    async def signup(self, display_name: str, email: str, password: str) -> Dict[str, Any]:
        """
        Create an account with a unique email.

        Args:
            display_name: Name shown for the account
            email: Login email; must not be in use
            password: Plaintext password, stored only as a bcrypt hash

        Returns:
            Sanitized account

        Raises:
            ValidationError: If a field is missing or the email is taken
            InternalError: On store or hashing failure
        """
        if not display_name or not email or not password:
            raise ValidationError("User name, email, and password are required.")

        op = OperationLogger("signup", name=__name__, email=email).start()
        try:
            existing = await self.records.find_one(RecordKind.ACCOUNT, [("email", email)])
            if existing:
                raise ValidationError("Email already in use")

            password_hash = await asyncio.to_thread(self.credentials.hash_password, password)
            try:
                record = await self.records.insert(
                    RecordKind.ACCOUNT,
                    {"display_name": display_name, "email": email, "password_hash": password_hash},
                )
            except DuplicateKeyError:
                # Lost a race against a concurrent signup for the same email
                raise ValidationError("Email already in use")
        except ServiceError:
            raise
        except Exception as e:
            op.fail(e)
            raise InternalError("Server error during signup.") from e

        op.complete(account_id=record["id"])
        logger.info("New user created successfully", email=email)
        return sanitize_account(record)

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Verify credentials and issue a session token.

        Returns:
            Dictionary with the token under ``authorization`` and the sanitized ``user``

        Raises:
            ValidationError: If email or password is missing
            AccountNotFoundError: If no account uses the email
            InvalidCredentialsError: If the password does not match
            InternalError: On store, verification or signing failure
        """
        if not email or not password:
            raise ValidationError("Email and password are required.")

        op = OperationLogger("login", name=__name__, email=email).start()
        try:
            record = await self.records.find_one(RecordKind.ACCOUNT, [("email", email)])
            if not record:
                raise AccountNotFoundError("User not found.")

            matches = await asyncio.to_thread(
                self.credentials.verify_password, password, record["password_hash"]
            )
            if not matches:
                logger.warning("Invalid credentials", email=email)
                raise InvalidCredentialsError("Invalid credentials.")

            token = self.credentials.issue_token(record["id"], self.token_ttl_seconds)
        except ServiceError:
            raise
        except Exception as e:
            op.fail(e)
            raise InternalError("Server error during login.") from e

        op.complete(account_id=record["id"])
        return {"authorization": token, "user": sanitize_account(record)}

    async def logout(self, account_id: str) -> Dict[str, str]:
        """
        Stateless logout.

        Tokens stay valid until they expire; the client discards its copy.
        """
        logger.info("User logged out", account_id=account_id)
        return {"message": "Logged out successfully!"}
