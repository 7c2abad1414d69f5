"""
Tests for the account, catalog and review services.
"""

import pytest
from bson import ObjectId
from unittest.mock import AsyncMock
from pymongo.errors import DuplicateKeyError, PyMongoError

from services import AccountService, CatalogService, ReviewService
from services.errors import (
    AccountNotFoundError,
    InternalError,
    InvalidCredentialsError,
    NotFoundOrUnauthorized,
    ValidationError,
)
from services.reviews import is_valid_rating
from store import RecordKind, RecordStore


@pytest.fixture
def account_service(record_store, credential_service):
    return AccountService(record_store, credential_service)


@pytest.fixture
def catalog_service(record_store):
    return CatalogService(record_store)


@pytest.fixture
def review_service(record_store):
    return ReviewService(record_store)


class TestAccountService:
    """Test cases for signup, login and logout."""

    @pytest.mark.asyncio
    async def test_signup_returns_sanitized_account(self, account_service, record_store):
        user = await account_service.signup("reader", "reader@example.com", "s3cret")

        assert user["userName"] == "reader"
        assert user["email"] == "reader@example.com"
        assert "password_hash" not in user
        stored = await record_store.find_one(RecordKind.ACCOUNT, [("email", "reader@example.com")])
        assert stored["password_hash"] != "s3cret"

    @pytest.mark.asyncio
    async def test_signup_duplicate_email_rejected(self, account_service, record_store):
        await account_service.signup("reader", "reader@example.com", "s3cret")

        with pytest.raises(ValidationError, match="Email already in use"):
            await account_service.signup("other", "reader@example.com", "different")

        accounts = await record_store.find_many(RecordKind.ACCOUNT)
        assert len(accounts) == 1

    @pytest.mark.asyncio
    async def test_signup_duplicate_key_race_rejected(self, credential_service):
        records = AsyncMock(spec=RecordStore)
        records.find_one.return_value = None
        records.insert.side_effect = DuplicateKeyError("E11000 duplicate key error")
        service = AccountService(records, credential_service)

        with pytest.raises(ValidationError):
            await service.signup("reader", "reader@example.com", "s3cret")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,email,password", [
        ("", "a@example.com", "pw"),
        ("reader", "", "pw"),
        ("reader", "a@example.com", None),
    ])
    async def test_signup_missing_fields(self, account_service, name, email, password):
        with pytest.raises(ValidationError):
            await account_service.signup(name, email, password)

    @pytest.mark.asyncio
    async def test_login_issues_token(self, account_service, credential_service):
        user = await account_service.signup("reader", "reader@example.com", "s3cret")

        result = await account_service.login("reader@example.com", "s3cret")

        assert result["user"] == user
        assert credential_service.decode_token(result["authorization"]) == user["id"]

    @pytest.mark.asyncio
    async def test_signup_and_login_with_long_password(self, account_service):
        user = await account_service.signup("reader", "reader@example.com", "p" * 80)

        result = await account_service.login("reader@example.com", "p" * 80)

        assert result["user"] == user

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, account_service):
        with pytest.raises(AccountNotFoundError) as exc_info:
            await account_service.login("nobody@example.com", "s3cret")

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, account_service):
        await account_service.signup("reader", "reader@example.com", "s3cret")

        with pytest.raises(InvalidCredentialsError) as exc_info:
            await account_service.login("reader@example.com", "wrong")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_login_store_failure_is_internal_error(self, credential_service):
        records = AsyncMock(spec=RecordStore)
        records.find_one.side_effect = PyMongoError("connection reset")
        service = AccountService(records, credential_service)

        with pytest.raises(InternalError):
            await service.login("reader@example.com", "s3cret")

    @pytest.mark.asyncio
    async def test_logout_is_stateless(self, account_service):
        result = await account_service.logout("account-123")

        assert result == {"message": "Logged out successfully!"}


class TestCatalogService:
    """Test cases for owner-scoped book management."""

    @pytest.mark.asyncio
    async def test_add_and_get_own_book(self, catalog_service, account_a, sample_book):
        book = await catalog_service.add_book(account_a, **sample_book)

        fetched = await catalog_service.get_book(account_a, book["id"])

        assert fetched["title"] == "Dune"
        assert fetched["owner_id"] == account_a

    @pytest.mark.asyncio
    async def test_other_owner_cannot_read_book(self, catalog_service, account_a, account_b, sample_book):
        book = await catalog_service.add_book(account_a, **sample_book)

        with pytest.raises(NotFoundOrUnauthorized) as exc_info:
            await catalog_service.get_book(account_b, book["id"])

        assert exc_info.value.status_code == 204

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["title", "author", "genre"])
    @pytest.mark.parametrize("blank", ["", "   ", None])
    async def test_add_book_requires_fields(self, catalog_service, account_a, sample_book, missing, blank):
        fields = {**sample_book, missing: blank}

        with pytest.raises(ValidationError):
            await catalog_service.add_book(account_a, **fields)

    @pytest.mark.asyncio
    async def test_list_books_filters(self, catalog_service, account_a, account_b, sample_book):
        await catalog_service.add_book(account_a, **sample_book)
        await catalog_service.add_book(account_a, "Emma", "Austen", "Classic")
        await catalog_service.add_book(account_b, "Hyperion", "Simmons", "SciFi")

        all_books = await catalog_service.list_books(account_a)
        scifi = await catalog_service.list_books(account_a, genre="SciFi")

        assert {b["title"] for b in all_books} == {"Dune", "Emma"}
        assert [b["title"] for b in scifi] == ["Dune"]

    @pytest.mark.asyncio
    async def test_list_books_empty(self, catalog_service, account_a):
        with pytest.raises(NotFoundOrUnauthorized):
            await catalog_service.list_books(account_a)

    @pytest.mark.asyncio
    async def test_update_book_partial(self, catalog_service, account_a, sample_book):
        book = await catalog_service.add_book(account_a, **sample_book)

        updated = await catalog_service.update_book(account_a, book["id"], title="Dune Messiah")

        assert updated["title"] == "Dune Messiah"
        assert updated["author"] == "Herbert"

    @pytest.mark.asyncio
    async def test_update_book_blank_field(self, catalog_service, account_a, sample_book):
        book = await catalog_service.add_book(account_a, **sample_book)

        with pytest.raises(ValidationError):
            await catalog_service.update_book(account_a, book["id"], author="  ")

    @pytest.mark.asyncio
    async def test_update_other_owners_book(self, catalog_service, account_a, account_b, sample_book):
        book = await catalog_service.add_book(account_a, **sample_book)

        with pytest.raises(NotFoundOrUnauthorized):
            await catalog_service.update_book(account_b, book["id"], title="Stolen")

    @pytest.mark.asyncio
    async def test_delete_book(self, catalog_service, account_a, account_b, sample_book):
        book = await catalog_service.add_book(account_a, **sample_book)

        with pytest.raises(NotFoundOrUnauthorized):
            await catalog_service.delete_book(account_b, book["id"])

        deleted = await catalog_service.delete_book(account_a, book["id"])
        assert deleted["id"] == book["id"]

        with pytest.raises(NotFoundOrUnauthorized):
            await catalog_service.get_book(account_a, book["id"])

    @pytest.mark.asyncio
    async def test_store_failure_is_internal_error(self, account_a):
        records = AsyncMock(spec=RecordStore)
        records.find_many.side_effect = PyMongoError("connection reset")

        with pytest.raises(InternalError):
            await CatalogService(records).list_books(account_a)


class TestReviewService:
    """Test cases for book reviews."""

    @pytest.mark.parametrize("rating,valid", [
        (0, False), (1, False), (2, True), (3, True), (4, True), (5, False), (True, False), ("3", False),
    ])
    def test_rating_bounds_are_exclusive(self, rating, valid):
        assert is_valid_rating(rating) is valid

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", [1, 5])
    async def test_add_review_rejects_boundary_ratings(self, review_service, catalog_service,
                                                       account_a, sample_book, rating):
        book = await catalog_service.add_book(account_a, **sample_book)

        with pytest.raises(ValidationError):
            await review_service.add_review(account_a, book["id"], "Great", rating)

    @pytest.mark.asyncio
    async def test_any_account_can_review(self, review_service, catalog_service,
                                          account_a, account_b, sample_book):
        book = await catalog_service.add_book(account_a, **sample_book)

        review = await review_service.add_review(account_b, book["id"], "Great", 3)

        assert review["author_id"] == account_b
        assert review["book_id"] == book["id"]
        assert review["rating"] == 3

    @pytest.mark.asyncio
    async def test_add_review_unknown_book(self, review_service, account_a):
        with pytest.raises(NotFoundOrUnauthorized):
            await review_service.add_review(account_a, str(ObjectId()), "Great", 3)

    @pytest.mark.asyncio
    async def test_add_review_missing_fields(self, review_service, account_a):
        with pytest.raises(ValidationError):
            await review_service.add_review(account_a, None, "Great", 3)
        with pytest.raises(ValidationError):
            await review_service.add_review(account_a, str(ObjectId()), "", 3)
        with pytest.raises(ValidationError):
            await review_service.add_review(account_a, str(ObjectId()), "Great", None)

    @pytest.mark.asyncio
    async def test_list_reviews_requires_book_id(self, review_service):
        with pytest.raises(ValidationError):
            await review_service.list_reviews(None)

    @pytest.mark.asyncio
    async def test_list_reviews_empty(self, review_service):
        with pytest.raises(NotFoundOrUnauthorized):
            await review_service.list_reviews(str(ObjectId()))

    @pytest.mark.asyncio
    async def test_delete_review_only_by_author(self, review_service, catalog_service,
                                                account_a, account_b, sample_book):
        book = await catalog_service.add_book(account_a, **sample_book)
        review = await review_service.add_review(account_a, book["id"], "Great", 4)

        with pytest.raises(NotFoundOrUnauthorized):
            await review_service.delete_review(account_b, review["id"])
        assert len(await review_service.list_reviews(book["id"])) == 1

        deleted = await review_service.delete_review(account_a, review["id"])
        assert deleted["id"] == review["id"]

        with pytest.raises(NotFoundOrUnauthorized):
            await review_service.list_reviews(book["id"])

    @pytest.mark.asyncio
    async def test_delete_review_requires_id(self, review_service, account_a):
        with pytest.raises(ValidationError):
            await review_service.delete_review(account_a, "")
