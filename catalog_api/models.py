"""
API models and schemas for the catalog endpoints.

Row records mirror the projections requested from the store and are used to
decode query results at the boundary. Response records are what the
endpoints serialize.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Served exactly as stored: 10 stays 10
Price = Union[int, float]


class AuthorsAction(str, Enum):
    """Actions served by the authors endpoint."""
    AUTHORS_WITH_MORE_THAN_5_BOOKS = "getAuthorsWithMoreThan5Books"
    AVERAGE_BOOK_PRICE_BY_COUNTRY = "getAverageBookPriceByCountry"


class BooksAction(str, Enum):
    """Actions served by the books endpoint."""
    BOOKS = "getBooks"
    BOOKS_WITH_AUTHORS = "getBooksWithAuthors"


class SortOrder(str, Enum):
    """Sort order options for publish_date."""
    ASC = "asc"
    DESC = "desc"


# Store rows

class AuthorRow(BaseModel):
    """Author projection used for book counting."""
    author_id: int
    name: str


class CountryTitle(BaseModel):
    """Embedded country reference."""
    title: Optional[str] = None


class PriceRow(BaseModel):
    """Embedded book price."""
    price: Optional[Price] = None


class AuthorPricesRow(BaseModel):
    """Author joined with its country title and its books' prices."""
    model_config = ConfigDict(populate_by_name=True)

    author_id: int
    country: Optional[CountryTitle] = None
    books: Optional[List[PriceRow]] = Field(None, alias="Books")


class Book(BaseModel):
    """Book as stored, also the getBooks response item."""
    book_id: int = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    author_id: int = Field(..., description="Author identifier")
    price: Price = Field(..., description="Book price")
    publish_date: str = Field(..., description="Publication date as stored")


class JoinedAuthor(BaseModel):
    """Author embedded in a book row."""
    author_id: int
    name: str
    country: Optional[CountryTitle] = None


class BookWithAuthorRow(BaseModel):
    """Book joined with its author and the author's country title."""
    model_config = ConfigDict(populate_by_name=True)

    book_id: int
    title: str
    price: Price
    publish_date: str
    author: JoinedAuthor = Field(..., alias="Authors")


# Responses

class AuthorBookCount(BaseModel):
    """Author with the number of books they wrote."""
    author_id: int = Field(..., description="Author identifier")
    name: str = Field(..., description="Author name")
    book_count: int = Field(..., description="Number of books by the author")


class CountryAveragePrice(BaseModel):
    """Average book price for one country."""
    country: Optional[str] = Field(..., description="Country title, null for authors without one")
    average_price: float = Field(..., description="Mean price of the country's books")


class BookAuthor(BaseModel):
    """Author block of a getBooksWithAuthors item."""
    author_id: int
    name: str
    country: str = Field(..., description="Country title or 'Unknown'")


class BookWithAuthorResponse(BaseModel):
    """Book joined with its author."""
    book_id: int
    title: str
    price: Price
    publish_date: str
    author: BookAuthor


class BookQueryParams(BaseModel):
    """Query parameters for getBooks."""
    author_id: Optional[int] = Field(None, description="Filter by author")
    sort: SortOrder = Field(SortOrder.ASC, description="Sort order on publish_date")
    page: int = Field(1, ge=1, description="Page number (1-based)")
    limit: int = Field(10, ge=1, description="Books per page")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def row_range(self) -> tuple:
        """Inclusive row range requested from the store."""
        return self.offset, self.offset + self.limit - 1


class BooksWithAuthorsParams(BaseModel):
    """Query parameters for getBooksWithAuthors."""
    year: Optional[int] = Field(None, description="Keep books published in this year")


class AuthenticatedUser(BaseModel):
    """Identity returned by the auth service; only the id is relied upon."""
    model_config = ConfigDict(extra="ignore")

    id: str
    email: Optional[str] = None
    role: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    store_status: str = Field(..., description="Whether the store endpoint is configured")
