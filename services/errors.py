"""
Domain service error taxonomy.

Each error carries the HTTP status the API layer answers with.
"""


class ServiceError(Exception):
    """Base class for failures reported by the domain services."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Missing or invalid input, including a duplicate email."""
    status_code = 400


class NotFoundOrUnauthorized(ServiceError):
    """The record does not exist or does not belong to the caller."""
    status_code = 204


class AuthenticationError(ServiceError):
    """Bad credentials presented at login."""
    status_code = 401


class AccountNotFoundError(AuthenticationError):
    status_code = 404


class InvalidCredentialsError(AuthenticationError):
    status_code = 401


class InternalError(ServiceError):
    """Unexpected store, hashing or signing failure."""
    status_code = 500
