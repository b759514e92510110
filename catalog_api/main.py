"""
FastAPI application for the catalog API.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

import structlog
from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalog_api import __version__
from catalog_api.auth import verify_bearer_token
from catalog_api.config import APIConfig, config
from catalog_api.database import CatalogService
from catalog_api.identity import IdentityVerifier
from catalog_api.models import (
    AuthenticatedUser, AuthorsAction, BooksAction,
    BookQueryParams, BooksWithAuthorsParams, HealthResponse
)
from catalog_api.store import CatalogStore, StoreError, connect_supabase
from utilities.logger import ActionLogger, setup_logging

# Setup logging
logger = structlog.get_logger(__name__)

ACTION_NOT_FOUND = "Action not found"


def get_settings(request: Request) -> APIConfig:
    return request.app.state.settings


def get_catalog_service(request: Request) -> CatalogService:
    """Service bound to the application's store and count failure policy."""
    settings = request.app.state.settings
    return CatalogService(request.app.state.store, settings.count_failure_policy)


def _parse_params(model, **raw):
    """
    Build a query parameter model from raw query strings.

    Empty values count as absent.

    Raises:
        HTTPException: 400 if a value does not validate
    """
    values = {key: value for key, value in raw.items() if value not in (None, "")}
    try:
        return model(**values)
    except ValidationError as e:
        logger.info("Invalid query parameters", model=model.__name__, errors=e.error_count())
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid query parameters"
        )


async def _run_action(
    action_logger: ActionLogger,
    action: str,
    operation: Callable[[], Awaitable[List[BaseModel]]],
    error_message: str
) -> JSONResponse:
    """Run one action, mapping store failures to 500."""
    try:
        rows = await operation()
    except StoreError as e:
        action_logger.log_upstream_error(action, str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_message
        )

    action_logger.log_action_complete(action, len(rows))
    return JSONResponse(content=[row.model_dump() for row in rows])


def create_app(
    settings: Optional[APIConfig] = None,
    store: Optional[CatalogStore] = None,
    identity_verifier: Optional[IdentityVerifier] = None
) -> FastAPI:
    """
    Create the application.

    Args:
        settings: Configuration, defaults to the environment-backed config
        store: Store to use instead of one built at startup
        identity_verifier: Verifier to use instead of one built at startup

    Returns:
        Configured FastAPI application
    """
    settings = settings or config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        # Startup
        setup_logging(
            log_level=settings.log_level,
            log_format=settings.log_format,
            log_file=settings.get_log_file_path(),
            debug=settings.debug
        )
        logger.info("Starting catalog API", version=__version__)

        # Injected collaborators are kept; the others are rebuilt on every startup
        if store is None or identity_verifier is None:
            client = await connect_supabase(settings)
            if store is None:
                app.state.store = CatalogStore(client)
            if identity_verifier is None:
                app.state.identity_verifier = IdentityVerifier(client)

        yield

        # Shutdown
        logger.info("Shutting down catalog API")
        app.state.store = store
        app.state.identity_verifier = identity_verifier

    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.store = store
    app.state.identity_verifier = identity_verifier

    # Exception handlers
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Render HTTP errors as a short plain-text reason."""
        return PlainTextResponse(
            str(exc.detail),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        return PlainTextResponse(
            "Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    # Health check endpoint (no authentication required)
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Report service status without contacting the store."""
        store_status = "configured" if settings.is_store_configured() else "unconfigured"
        health = HealthResponse(
            status="healthy" if store_status == "configured" else "degraded",
            timestamp=datetime.utcnow(),
            version=__version__,
            store_status=store_status
        )
        return JSONResponse(content=health.model_dump(mode="json"))

    @app.get("/authors", tags=["Authors"])
    async def authors(
        action: Optional[str] = None,
        user: AuthenticatedUser = Depends(verify_bearer_token),
        service: CatalogService = Depends(get_catalog_service),
        app_settings: APIConfig = Depends(get_settings)
    ):
        """
        Author aggregates.

        - **getAuthorsWithMoreThan5Books**: authors with 5 or more books
        - **getAverageBookPriceByCountry**: average book price per country
        """
        action_logger = ActionLogger("authors").bind_context(user_id=user.id)

        try:
            selected = AuthorsAction(action)
        except ValueError:
            action_logger.log_unknown_action(action)
            if app_settings.strict_author_actions:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ACTION_NOT_FOUND)
            return Response(status_code=status.HTTP_200_OK)

        action_logger.log_action_start(selected.value)
        handlers = {
            AuthorsAction.AUTHORS_WITH_MORE_THAN_5_BOOKS: service.get_authors_with_more_than_5_books,
            AuthorsAction.AVERAGE_BOOK_PRICE_BY_COUNTRY: service.get_average_book_price_by_country,
        }
        return await _run_action(
            action_logger, selected.value, handlers[selected], "Error fetching authors"
        )

    @app.get("/books", tags=["Books"])
    async def books(
        action: Optional[str] = None,
        author_id: Optional[str] = None,
        sort: Optional[str] = None,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        year: Optional[str] = None,
        user: AuthenticatedUser = Depends(verify_bearer_token),
        service: CatalogService = Depends(get_catalog_service)
    ):
        """
        Book listings.

        - **getBooks**: paginated books (author_id, sort=asc|desc, page, limit)
        - **getBooksWithAuthors**: books with their author, by price descending (year)
        """
        action_logger = ActionLogger("books").bind_context(user_id=user.id)

        try:
            selected = BooksAction(action)
        except ValueError:
            action_logger.log_unknown_action(action)
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ACTION_NOT_FOUND)

        if selected == BooksAction.BOOKS:
            query_params = _parse_params(
                BookQueryParams, author_id=author_id, sort=sort, page=page, limit=limit
            )
            action_logger.log_action_start(selected.value, **query_params.model_dump(mode="json"))
            return await _run_action(
                action_logger,
                selected.value,
                lambda: service.get_books(query_params),
                "Error fetching books"
            )

        params = _parse_params(BooksWithAuthorsParams, year=year)
        action_logger.log_action_start(selected.value, year=params.year)
        return await _run_action(
            action_logger,
            selected.value,
            lambda: service.get_books_with_authors(params.year),
            "Error fetching books with authors"
        )

    return app


# Create FastAPI application
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "catalog_api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="info"
    )
