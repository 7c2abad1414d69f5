"""
Document store access: connection management, record schemas and the
generic record access layer.
"""

from .database import MongoDBManager, StoreUnavailableError
from .models import RecordKind, RecordSchema, schema_for
from .records import Clause, Filter, MissingScopeError, RecordStore, UnknownFieldError

__all__ = [
    "Clause",
    "Filter",
    "MissingScopeError",
    "MongoDBManager",
    "RecordKind",
    "RecordSchema",
    "RecordStore",
    "StoreUnavailableError",
    "UnknownFieldError",
    "schema_for",
]
