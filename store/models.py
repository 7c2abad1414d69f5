"""
Record kinds and their document schemas.

Each schema declares the fields the record access layer may filter or patch
on, which of them hold ObjectId references, and the field that scopes a
record to the account that owns it.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecordKind(str, Enum):
    """Document categories held by the store."""
    ACCOUNT = "account"
    BOOK = "book"
    REVIEW = "review"


class RecordSchema(BaseModel):
    """Declared shape of one record kind."""
    model_config = ConfigDict(frozen=True)

    kind: RecordKind
    fields: FrozenSet[str] = Field(..., description="Fields that may be filtered or patched")
    object_id_fields: FrozenSet[str] = Field(default=frozenset(), description="Fields stored as ObjectId")
    scope_field: Optional[str] = Field(None, description="Owner/author reference used for scoping")
    unique_fields: FrozenSet[str] = Field(default=frozenset())
    indexed_fields: FrozenSet[str] = Field(default=frozenset())

    def declares(self, field: str) -> bool:
        return field in self.fields

    def is_object_id(self, field: str) -> bool:
        return field in self.object_id_fields


ACCOUNT_SCHEMA = RecordSchema(
    kind=RecordKind.ACCOUNT,
    fields=frozenset({"_id", "display_name", "email", "password_hash"}),
    object_id_fields=frozenset({"_id"}),
    unique_fields=frozenset({"email"}),
)

BOOK_SCHEMA = RecordSchema(
    kind=RecordKind.BOOK,
    fields=frozenset({"_id", "title", "author", "genre", "owner_id"}),
    object_id_fields=frozenset({"_id", "owner_id"}),
    scope_field="owner_id",
    indexed_fields=frozenset({"owner_id"}),
)

REVIEW_SCHEMA = RecordSchema(
    kind=RecordKind.REVIEW,
    fields=frozenset({"_id", "text", "rating", "book_id", "author_id"}),
    object_id_fields=frozenset({"_id", "book_id", "author_id"}),
    scope_field="author_id",
    indexed_fields=frozenset({"book_id", "author_id"}),
)

SCHEMAS: Dict[RecordKind, RecordSchema] = {
    RecordKind.ACCOUNT: ACCOUNT_SCHEMA,
    RecordKind.BOOK: BOOK_SCHEMA,
    RecordKind.REVIEW: REVIEW_SCHEMA,
}


def schema_for(kind: RecordKind) -> RecordSchema:
    """Look up the schema for a record kind."""
    return SCHEMAS[RecordKind(kind)]
