"""
FastAPI REST API for the Book Review Catalog.

This module provides:
- Account signup, login and logout
- Bearer token authentication
- Owner-scoped book management
- Book reviews
"""
