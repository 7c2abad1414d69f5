"""
Book catalog scoped to the owning account.

Every query and mutation passes the caller's account id as the record scope,
so a book that exists but belongs to someone else looks exactly like a book
that does not exist.
"""

from typing import Any, Dict, List, Optional

import structlog

from store import RecordKind, RecordStore

from .errors import InternalError, NotFoundOrUnauthorized, ValidationError

logger = structlog.get_logger(__name__)


class CatalogService:
    """CRUD for books owned by the authenticated account."""

    def __init__(self, records: RecordStore):
        self.records = records

    async def list_books(
        self,
        owner_id: str,
        title: Optional[str] = None,
        author: Optional[str] = None,
        genre: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        List the owner's books, optionally narrowed by exact title, author or genre.

        Raises:
            NotFoundOrUnauthorized: If nothing matches
        """
        params = {"title": title, "author": author, "genre": genre}
        filters = [(field, value) for field, value in params.items() if value]
        try:
            books = await self.records.find_many(RecordKind.BOOK, filters, scope=owner_id)
        except Exception as e:
            logger.error("Error fetching books", owner_id=owner_id, error=str(e))
            raise InternalError("Server error while fetching books.") from e

        if not books:
            raise NotFoundOrUnauthorized("Books not found or unauthorized.")
        return books

    async def add_book(self, owner_id: str, title: str, author: str, genre: str) -> Dict[str, Any]:
        """
        Add a book owned by the caller.

        Raises:
            ValidationError: If title, author or genre is missing or blank
        """
        if any(not value or not value.strip() for value in (title, author, genre)):
            raise ValidationError("Title, author, and genre are required.")

        try:
            book = await self.records.insert(
                RecordKind.BOOK,
                {"title": title, "author": author, "genre": genre, "owner_id": owner_id},
            )
        except Exception as e:
            logger.error("Error while adding a new book", title=title, author=author, error=str(e))
            raise InternalError("Failed to add the book") from e

        logger.info("New book added successfully", title=title, author=author, book_id=book["id"])
        return book

    async def get_book(self, owner_id: str, book_id: str) -> Dict[str, Any]:
        try:
            book = await self.records.find_one(RecordKind.BOOK, [("_id", book_id)], scope=owner_id)
        except Exception as e:
            logger.error("Error fetching book", book_id=book_id, error=str(e))
            raise InternalError("Server error while fetching book.") from e

        if book is None:
            raise NotFoundOrUnauthorized("Book not found or unauthorized.")
        return book

    async def update_book(
        self,
        owner_id: str,
        book_id: str,
        title: Optional[str] = None,
        author: Optional[str] = None,
        genre: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Update the given fields of an owned book. Omitted fields keep their value.

        Raises:
            ValidationError: If a field is given as an empty string
            NotFoundOrUnauthorized: If the book is missing or owned by someone else
        """
        patch = {"title": title, "author": author, "genre": genre}
        blank = [field for field, value in patch.items() if value is not None and not value.strip()]
        if blank:
            raise ValidationError(f"{', '.join(blank)} cannot be empty.")

        try:
            book = await self.records.update_one(
                RecordKind.BOOK, [("_id", book_id)], patch, scope=owner_id
            )
        except Exception as e:
            logger.error("Error updating book", book_id=book_id, error=str(e))
            raise InternalError("Server error while updating book.") from e

        if book is None:
            raise NotFoundOrUnauthorized("Book not found or unauthorized.")
        return book

    async def delete_book(self, owner_id: str, book_id: str) -> Dict[str, Any]:
        try:
            book = await self.records.delete_one(RecordKind.BOOK, [("_id", book_id)], scope=owner_id)
        except Exception as e:
            logger.error("Error deleting book", book_id=book_id, error=str(e))
            raise InternalError("Server error while deleting the book.") from e

        if book is None:
            raise NotFoundOrUnauthorized("Book not found or unauthorized.")
        logger.info("Book deleted", book_id=book_id, owner_id=owner_id)
        return book
