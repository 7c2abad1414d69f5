"""
FastAPI main application for the Book Review Catalog API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.auth import Identity, credential_service, get_current_identity
from api.config import config as api_config
from api.models import (
    BookMessageResponse, BookRequest, BookResponse,
    ErrorResponse, HealthResponse,
    LoginRequest, LoginResponse, MessageResponse,
    ReviewMessageResponse, ReviewRequest, ReviewResponse,
    SignupRequest, SignupResponse,
    book_list_response, book_response, review_list_response, review_response,
)
from services import AccountService, CatalogService, ReviewService
from services.errors import ServiceError
from store import MongoDBManager, RecordStore
from utilities.config import config
from utilities.logger import setup_logging

# Setup logging
logger = structlog.get_logger(__name__)

# Global services, built at startup
db_manager: Optional[MongoDBManager] = None
account_service: Optional[AccountService] = None
catalog_service: Optional[CatalogService] = None
review_service: Optional[ReviewService] = None


def build_services(manager: MongoDBManager) -> None:
    """Wire the domain services onto one record store."""
    global db_manager, account_service, catalog_service, review_service
    records = RecordStore(manager)
    db_manager = manager
    account_service = AccountService(
        records,
        credential_service,
        token_ttl_seconds=api_config.access_token_ttl_seconds,
    )
    catalog_service = CatalogService(records)
    review_service = ReviewService(records)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting Book Review Catalog API")

    manager = MongoDBManager(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database,
        collection_names=config.get_collection_names(),
        connect_timeout_ms=config.connect_timeout_ms,
    )
    # Readiness check: refuse to start without a reachable store
    await manager.connect()
    build_services(manager)

    yield

    logger.info("Shutting down Book Review Catalog API")
    await manager.disconnect()


app = FastAPI(
    title=api_config.api_title,
    description="""
    REST API for personal book catalogs and book reviews.

    ## Authentication

    Sign up, then log in to receive a token valid for one hour. Include it in the Authorization header:

    ```
    Authorization: Bearer your_token_here
    ```

    Books are private to the account that created them. Reviews can be added to any
    existing book and deleted only by their author.
    """,
    version=api_config.api_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=api_config.get_cors_origins(),
    allow_credentials=api_config.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _require(service):
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database service not available"
        )
    return service


# Exception handlers
@app.exception_handler(ServiceError)
async def service_exception_handler(request, exc: ServiceError):
    """Translate domain service errors into responses."""
    if exc.status_code == status.HTTP_204_NO_CONTENT:
        # 204 cannot carry a body; the message travels in a header
        return Response(
            status_code=status.HTTP_204_NO_CONTENT,
            headers={"X-Status-Message": exc.message},
        )
    if exc.status_code >= 500:
        logger.error("Service failure", error=exc.message, path=request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message, status_code=exc.status_code).model_dump()
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """Report malformed request bodies and parameters as 400."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error="Invalid request",
            detail="; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
            ),
            status_code=status.HTTP_400_BAD_REQUEST
        ).model_dump()
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.detail,
            status_code=exc.status_code
        ).model_dump(),
        headers=exc.headers
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle general exceptions."""
    logger.exception("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc) if api_config.debug else None,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        ).model_dump()
    )


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    db_status = "unavailable"
    if db_manager:
        health_info = await db_manager.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=api_config.api_version,
        database_status=db_status
    )


# Auth endpoints
@app.post("/api/auth/signup", response_model=SignupResponse,
          status_code=status.HTTP_201_CREATED, tags=["Auth"])
async def signup(body: SignupRequest):
    """Create an account. Emails must be unique."""
    user = await _require(account_service).signup(body.user_name, body.email, body.password)
    return {"message": "User created successfully", "user": user}


@app.post("/api/auth/login", response_model=LoginResponse, tags=["Auth"])
async def login(body: LoginRequest):
    """Exchange email and password for a one-hour bearer token."""
    result = await _require(account_service).login(body.email, body.password)
    return {"message": "Login successful!", **result}


@app.post("/api/auth/logout", response_model=MessageResponse, tags=["Auth"])
async def logout(identity: Identity = Depends(get_current_identity)):
    """Stateless logout; the client discards its token."""
    return await _require(account_service).logout(identity.account_id)


# Books endpoints
@app.get("/api/books", response_model=List[BookResponse], tags=["Books"])
async def list_books(
    title: Optional[str] = None,
    author: Optional[str] = None,
    genre: Optional[str] = None,
    identity: Identity = Depends(get_current_identity)
):
    """
    List the caller's books.

    - **title**, **author**, **genre**: exact-match filters
    """
    books = await _require(catalog_service).list_books(identity.account_id, title, author, genre)
    return book_list_response(books)


@app.post("/api/books", response_model=BookMessageResponse,
          status_code=status.HTTP_201_CREATED, tags=["Books"])
async def add_book(body: BookRequest, identity: Identity = Depends(get_current_identity)):
    """Add a book owned by the caller."""
    book = await _require(catalog_service).add_book(
        identity.account_id, body.title, body.author, body.genre
    )
    return {"message": "Book added successfully", "book": book_response(book)}


@app.get("/api/books/{book_id}", response_model=BookResponse, tags=["Books"])
async def get_book(book_id: str, identity: Identity = Depends(get_current_identity)):
    """Get one of the caller's books."""
    book = await _require(catalog_service).get_book(identity.account_id, book_id)
    return book_response(book)


@app.put("/api/books/{book_id}", response_model=BookMessageResponse, tags=["Books"])
async def update_book(
    book_id: str,
    body: BookRequest,
    identity: Identity = Depends(get_current_identity)
):
    """Update one of the caller's books."""
    book = await _require(catalog_service).update_book(
        identity.account_id, book_id, body.title, body.author, body.genre
    )
    return {"message": "Book updated successfully!", "book": book_response(book)}


@app.delete("/api/books/{book_id}", response_model=BookMessageResponse, tags=["Books"])
async def delete_book(book_id: str, identity: Identity = Depends(get_current_identity)):
    """Delete one of the caller's books."""
    book = await _require(catalog_service).delete_book(identity.account_id, book_id)
    return {"message": "Book deleted successfully!", "book": book_response(book)}


# Reviews endpoints
@app.get("/api/reviews", response_model=List[ReviewResponse], tags=["Reviews"])
async def list_reviews(
    book_id: Optional[str] = Query(None, alias="bookId"),
    identity: Identity = Depends(get_current_identity)
):
    """List all reviews of a book."""
    reviews = await _require(review_service).list_reviews(book_id)
    return review_list_response(reviews)


@app.post("/api/reviews", response_model=ReviewMessageResponse,
          status_code=status.HTTP_201_CREATED, tags=["Reviews"])
async def add_review(
    body: ReviewRequest,
    book_id: Optional[str] = Query(None, alias="bookId"),
    identity: Identity = Depends(get_current_identity)
):
    """Review a book. Ratings are accepted strictly between 1 and 5."""
    review = await _require(review_service).add_review(
        identity.account_id, book_id, body.review, body.rating
    )
    return {"message": "Review added successfully", "review": review_response(review)}


@app.delete("/api/reviews", response_model=ReviewMessageResponse, tags=["Reviews"])
async def delete_review(
    review_id: Optional[str] = Query(None, alias="reviewId"),
    identity: Identity = Depends(get_current_identity)
):
    """Delete a review written by the caller."""
    review = await _require(review_service).delete_review(identity.account_id, review_id)
    return {"message": "Review deleted successfully!", "review": review_response(review)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level="info"
    )
