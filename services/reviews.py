"""
Reviews attached to books.

Any authenticated account may review any existing book; only the author of a
review may delete it.
"""

from typing import Any, Dict, List, Optional

import structlog

from store import RecordKind, RecordStore

from .errors import InternalError, NotFoundOrUnauthorized, ValidationError

logger = structlog.get_logger(__name__)

# Both bounds are exclusive: only 2, 3 and 4 are accepted.
RATING_LOWER_BOUND = 1
RATING_UPPER_BOUND = 5


def is_valid_rating(rating: Any) -> bool:
    """True for integer ratings strictly between the bounds."""
    if isinstance(rating, bool) or not isinstance(rating, int):
        return False
    return RATING_LOWER_BOUND < rating < RATING_UPPER_BOUND


class ReviewService:
    """List, add and delete book reviews."""

    def __init__(self, records: RecordStore):
        self.records = records

    async def list_reviews(self, book_id: Optional[str]) -> List[Dict[str, Any]]:
        """
        All reviews of a book, in store order.

        Raises:
            ValidationError: If book_id is missing
            NotFoundOrUnauthorized: If the book has no reviews
        """
        if not book_id:
            raise ValidationError("Book ID is required.")

        try:
            reviews = await self.records.find_many(RecordKind.REVIEW, [("book_id", book_id)])
        except Exception as e:
            logger.error("Error fetching reviews", book_id=book_id, error=str(e))
            raise InternalError("Server error while fetching reviews.") from e

        if not reviews:
            raise NotFoundOrUnauthorized("No reviews found for this book.")
        return reviews

    async def add_review(
        self,
        author_id: str,
        book_id: Optional[str],
        text: Optional[str],
        rating: Optional[int],
    ) -> Dict[str, Any]:
        """
        Review an existing book as the authenticated account.

        Raises:
            ValidationError: If a field is missing or the rating is out of range
            NotFoundOrUnauthorized: If the book does not exist
        """
        if not book_id or not text or rating is None:
            raise ValidationError("Book ID, review text, and rating are required.")
        if not is_valid_rating(rating):
            raise ValidationError("Rating must be between 1 and 5.")

        try:
            book = await self.records.find_one(RecordKind.BOOK, [("_id", book_id)])
            if book is None:
                raise NotFoundOrUnauthorized("Book not found.")

            review = await self.records.insert(
                RecordKind.REVIEW,
                {"text": text, "rating": rating, "book_id": book_id, "author_id": author_id},
            )
        except NotFoundOrUnauthorized:
            raise
        except Exception as e:
            logger.error("Error while adding a new review", book_id=book_id, rating=rating, error=str(e))
            raise InternalError("Server error during adding a review.") from e

        logger.info("New review added successfully", review_id=review["id"], book_id=book_id, rating=rating)
        return review

    async def delete_review(self, author_id: str, review_id: Optional[str]) -> Dict[str, Any]:
        """
        Delete a review written by the authenticated account.

        Raises:
            ValidationError: If review_id is missing
            NotFoundOrUnauthorized: If the review is missing or written by someone else
        """
        if not review_id:
            raise ValidationError("Review ID is required.")

        try:
            review = await self.records.delete_one(
                RecordKind.REVIEW, [("_id", review_id)], scope=author_id
            )
        except Exception as e:
            logger.error("Error deleting review", review_id=review_id, error=str(e))
            raise InternalError("Server error while deleting the review.") from e

        if review is None:
            raise NotFoundOrUnauthorized("Review not found or unauthorized.")
        logger.info("Review deleted", review_id=review_id, author_id=author_id)
        return review
