"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SignupRequest(BaseModel):
    """Signup request body."""
    model_config = ConfigDict(populate_by_name=True)

    user_name: Optional[str] = Field(None, alias="userName", description="Display name")
    email: Optional[str] = Field(None, description="Login email")
    password: Optional[str] = Field(None, description="Plaintext password")


class LoginRequest(BaseModel):
    """Login request body."""
    email: Optional[str] = Field(None, description="Login email")
    password: Optional[str] = Field(None, description="Plaintext password")


class BookRequest(BaseModel):
    """Book create/update body. Missing fields are rejected on create and kept on update."""
    title: Optional[str] = Field(None, description="Book title")
    author: Optional[str] = Field(None, description="Book author")
    genre: Optional[str] = Field(None, description="Book genre")


class ReviewRequest(BaseModel):
    """Review create body."""
    review: Optional[str] = Field(None, description="Review text")
    rating: Optional[int] = Field(None, description="Rating, accepted strictly between 1 and 5")


class UserResponse(BaseModel):
    """Sanitized account."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Account identifier")
    user_name: Optional[str] = Field(None, alias="userName", description="Display name")
    email: str = Field(..., description="Login email")


class BookResponse(BaseModel):
    """Book response model for API."""
    id: str = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    genre: str = Field(..., description="Book genre")
    owner_id: str = Field(..., description="Owning account identifier")


class ReviewResponse(BaseModel):
    """Review response model for API."""
    id: str = Field(..., description="Unique review identifier")
    review: str = Field(..., description="Review text")
    rating: int = Field(..., description="Rating")
    book_id: str = Field(..., description="Reviewed book identifier")
    author_id: str = Field(..., description="Authoring account identifier")


class SignupResponse(BaseModel):
    message: str
    user: UserResponse


class LoginResponse(BaseModel):
    message: str
    authorization: str = Field(..., description="Bearer token valid for one hour")
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class BookMessageResponse(BaseModel):
    message: str
    book: BookResponse


class ReviewMessageResponse(BaseModel):
    message: str
    review: ReviewResponse


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")


def book_response(record: dict) -> BookResponse:
    return BookResponse(**{k: record[k] for k in BookResponse.model_fields})


def review_response(record: dict) -> ReviewResponse:
    return ReviewResponse(
        id=record["id"],
        review=record["text"],
        rating=record["rating"],
        book_id=record["book_id"],
        author_id=record["author_id"],
    )


def book_list_response(records: List[dict]) -> List[dict]:
    return [book_response(r).model_dump() for r in records]


def review_list_response(records: List[dict]) -> List[dict]:
    return [review_response(r).model_dump() for r in records]
