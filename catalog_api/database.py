"""
Catalog service layer: the queries and in-memory aggregation behind each action.
"""

import asyncio
from datetime import datetime
from typing import Dict, List, Optional

import structlog

from catalog_api.config import CountFailurePolicy
from catalog_api.models import (
    AuthorRow, AuthorPricesRow, AuthorBookCount, CountryAveragePrice,
    Book, BookQueryParams, BookWithAuthorRow, BookWithAuthorResponse, BookAuthor,
    SortOrder
)
from catalog_api.store import CatalogStore, StoreError, decode_rows

logger = structlog.get_logger(__name__)

# Inclusive: an author with exactly this many books is kept
MIN_BOOK_COUNT = 5

UNKNOWN_COUNTRY = "Unknown"


class BookCountOutcome:
    """Result of one per-author count query: a count or the error that replaced it."""

    def __init__(self, author: AuthorRow, count: Optional[int] = None, error: Optional[Exception] = None):
        self.author = author
        self.count = count
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None


def publish_year(publish_date: str) -> Optional[int]:
    """
    Calendar year of a stored publish date, read as written (no time zone shift).

    Returns:
        The year, or None if the value is not an ISO date or datetime
    """
    try:
        return datetime.fromisoformat(publish_date.replace("Z", "+00:00")).year
    except (ValueError, AttributeError):
        return None


class CatalogService:
    """Read-only operations over Authors, Books and Countries."""

    def __init__(
        self,
        store: CatalogStore,
        count_failure_policy: CountFailurePolicy = CountFailurePolicy.FAIL
    ):
        self.store = store
        self.count_failure_policy = count_failure_policy

    async def _count_books(self, author: AuthorRow) -> BookCountOutcome:
        try:
            result = await self.store.fetch(
                "Books",
                lambda books: books.select("*", count="exact", head=True).eq("author_id", author.author_id)
            )
        except StoreError as e:
            return BookCountOutcome(author, error=e)
        return BookCountOutcome(author, count=result.count or 0)

    async def get_authors_with_more_than_5_books(self) -> List[AuthorBookCount]:
        """
        Authors with at least MIN_BOOK_COUNT books.

        Counts are queried concurrently, one per author. With the FAIL policy
        the first failed count aborts the whole operation; with SKIP the
        affected authors are left out.

        Raises:
            StoreError: If the authors query fails, or a count fails under FAIL
        """
        result = await self.store.fetch("Authors", lambda authors: authors.select("author_id, name"))
        authors = decode_rows(AuthorRow, result.data or [])

        outcomes = await asyncio.gather(*(self._count_books(author) for author in authors))

        failed = [outcome for outcome in outcomes if not outcome.ok]
        if failed:
            if self.count_failure_policy == CountFailurePolicy.FAIL:
                raise StoreError(
                    f"Book count failed for {len(failed)} author(s)"
                ) from failed[0].error
            logger.warning(
                "Skipping authors whose book count failed",
                author_ids=[outcome.author.author_id for outcome in failed]
            )

        return [
            AuthorBookCount(
                author_id=outcome.author.author_id,
                name=outcome.author.name,
                book_count=outcome.count
            )
            for outcome in outcomes
            if outcome.ok and outcome.count >= MIN_BOOK_COUNT
        ]

    async def get_average_book_price_by_country(self) -> List[CountryAveragePrice]:
        """
        Mean book price per country title, in order of first appearance.

        Authors without a country are grouped under None. Authors without
        priced books do not create a group.
        """
        result = await self.store.fetch(
            "Authors",
            lambda authors: authors.select("""
                author_id,
                country:country_id (title),
                Books (price)
            """)
        )
        authors = decode_rows(AuthorPricesRow, result.data or [])

        country_prices: Dict[Optional[str], List[float]] = {}
        for author in authors:
            country = author.country.title if author.country else None
            prices = [book.price for book in author.books or [] if book.price is not None]
            if prices:
                country_prices.setdefault(country, []).extend(prices)

        return [
            CountryAveragePrice(country=country, average_price=sum(prices) / len(prices))
            for country, prices in country_prices.items()
        ]

    async def get_books(self, query_params: BookQueryParams) -> List[Book]:
        """
        One page of books ordered by publish_date.

        Args:
            query_params: Author filter, sort order and paging
        """
        start, end = query_params.row_range()

        def build(books):
            query = books.select("book_id, title, author_id, price, publish_date")
            if query_params.author_id is not None:
                query = query.eq("author_id", query_params.author_id)
            return query.order("publish_date", desc=query_params.sort == SortOrder.DESC).range(start, end)

        result = await self.store.fetch("Books", build)
        return decode_rows(Book, result.data or [])

    async def get_books_with_authors(self, year: Optional[int] = None) -> List[BookWithAuthorResponse]:
        """
        All books with their author, most expensive first.

        Args:
            year: Keep only books published in this calendar year
        """
        result = await self.store.fetch(
            "Books",
            lambda books: books.select("""
                book_id,
                title,
                price,
                publish_date,
                Authors (
                    author_id,
                    name,
                    country:country_id (title)
                )
            """).order("price", desc=True)
        )
        books = decode_rows(BookWithAuthorRow, result.data or [])

        if year is not None:
            books = [book for book in books if publish_year(book.publish_date) == year]

        return [
            BookWithAuthorResponse(
                book_id=book.book_id,
                title=book.title,
                price=book.price,
                publish_date=book.publish_date,
                author=BookAuthor(
                    author_id=book.author.author_id,
                    name=book.author.name,
                    country=(book.author.country.title if book.author.country else None) or UNKNOWN_COUNTRY
                )
            )
            for book in books
        ]
