"""
Data access over the Supabase client.

Queries are built with the supabase/postgrest builder; this module only
connects, executes and decodes, turning client failures into StoreError.
"""

from typing import Any, Callable, List, Optional, Type, TypeVar

import httpx
import structlog
from postgrest.exceptions import APIError
from pydantic import BaseModel, TypeAdapter, ValidationError
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from catalog_api.config import APIConfig

logger = structlog.get_logger(__name__)

RowT = TypeVar("RowT", bound=BaseModel)


class StoreError(Exception):
    """A query against the store failed."""


class StoreDecodeError(StoreError):
    """A query result did not have the expected shape."""


def decode_rows(model: Type[RowT], data: Any) -> List[RowT]:
    """
    Validate raw rows against a row model.

    Raises:
        StoreDecodeError: If any row does not match the model
    """
    try:
        return TypeAdapter(List[model]).validate_python(data)
    except ValidationError as e:
        logger.error("Unexpected row shape", model=model.__name__, errors=e.error_count())
        raise StoreDecodeError(f"Unexpected {model.__name__} shape") from e


async def connect_supabase(settings: APIConfig) -> Optional[AsyncClient]:
    """
    Create the async Supabase client shared by the store and the verifier.

    Returns:
        The client, or None when the URL or key is not configured
    """
    if not settings.is_store_configured():
        logger.warning("SUPABASE_URL or SUPABASE_ANON_KEY is empty, requests will be refused")
        return None

    client = await acreate_client(
        settings.supabase_url,
        settings.supabase_anon_key,
        options=AsyncClientOptions(
            postgrest_client_timeout=settings.request_timeout,
            auto_refresh_token=False,
            persist_session=False
        )
    )
    logger.info("Supabase client created", url=settings.supabase_url)
    return client


class CatalogStore:
    """Runs queries on the Authors, Books and Countries tables."""

    def __init__(self, client: Optional[AsyncClient]):
        """
        Args:
            client: Supabase client, None when the store is not configured
        """
        self.client = client

    async def fetch(self, table: str, build: Callable[[Any], Any]):
        """
        Build a query on a table and execute it.

        Args:
            table: Table name
            build: Receives the table's query builder and returns the final query

        Returns:
            The client response, with ``data`` and ``count``

        Raises:
            StoreError: If the store is not configured, rejects the query or cannot be reached
        """
        if self.client is None:
            raise StoreError("Store endpoint is not configured")

        query = build(self.client.table(table))
        try:
            return await query.execute()
        except APIError as e:
            logger.error("Store query rejected", table=table, code=e.code, error=e.message)
            raise StoreError(f"{table} query failed: {e.message}") from e
        except httpx.HTTPError as e:
            logger.error("Store request failed", table=table, error=str(e))
            raise StoreError(f"{table} query failed: {e}") from e
