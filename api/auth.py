"""
Bearer token authentication for the FastAPI API.
"""

import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from api.config import config
from services.credentials import CredentialService, TokenError

logger = structlog.get_logger(__name__)

# Security scheme; missing headers are answered with 401 below instead of 403
security = HTTPBearer(auto_error=False)

credential_service = CredentialService(
    secret=config.jwt_secret,
    algorithm=config.jwt_algorithm,
    rounds=config.bcrypt_rounds,
)


class Identity(BaseModel):
    """Account resolved from a verified session token."""
    account_id: str


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Identity:
    """
    Verify the bearer token and attach the identity to the request.

    Args:
        request: Incoming request; the identity is stored on request.state
        credentials: Parsed Authorization header, if any

    Returns:
        Identity of the authenticated account

    Raises:
        HTTPException: 401 if the token is missing, malformed or expired
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")

    try:
        account_id = credential_service.decode_token(credentials.credentials)
    except TokenError as e:
        logger.warning("Rejected session token", path=request.url.path, error=str(e))
        raise _unauthorized("Invalid or expired token")

    identity = Identity(account_id=account_id)
    request.state.identity = identity
    return identity
