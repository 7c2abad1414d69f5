"""
Domain services for the book review catalog.

This package contains:
- Credential service (bcrypt password hashing, signed session tokens)
- Account signup/login/logout
- Owner-scoped book catalog
- Book reviews
"""

from .accounts import AccountService
from .books import CatalogService
from .credentials import CredentialService
from .reviews import ReviewService

__all__ = ["AccountService", "CatalogService", "CredentialService", "ReviewService"]
