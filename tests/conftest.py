"""
Pytest configuration and shared fixtures.
"""

from types import SimpleNamespace

import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from catalog_api.config import APIConfig
from catalog_api.identity import IdentityVerifier
from catalog_api.main import create_app
from catalog_api.models import AuthenticatedUser
from catalog_api.store import CatalogStore

AUTH_HEADERS = {"Authorization": "Bearer test-access-token"}


def query_result(data=None, count=None):
    """Response shaped like the client's: ``data`` and ``count``."""
    return SimpleNamespace(data=data, count=count)


def rejected(message):
    return APIError({"message": message, "code": "PGRST000", "details": None, "hint": None})


class RecordedQuery:
    """Query builder double recording the calls made on one table."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.columns = None
        self.count = None
        self.head = None
        self.filters = []
        self.ordering = None
        self.row_range = None

    def select(self, *columns, count=None, head=None):
        self.columns = ",".join("".join(column.split()) for column in columns)
        self.count = count
        self.head = head
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.ordering = (column, desc)
        return self

    def range(self, start, end):
        self.row_range = (start, end)
        return self

    async def execute(self):
        self.client.queries.append(self)
        return self.client.handlers[self.table](self)


class RecordingClient:
    """
    Supabase client double answering queries from per-table handlers.

    A handler receives the RecordedQuery and returns a query_result, or raises.
    """

    def __init__(self):
        self.queries = []
        self.handlers = {}

    def table(self, name):
        return RecordedQuery(self, name)


class RecordingStore(CatalogStore):
    """CatalogStore over a RecordingClient, with helpers to set up answers."""

    def __init__(self):
        super().__init__(RecordingClient())

    @property
    def queries(self):
        return self.client.queries

    def on(self, table, handler):
        self.client.handlers[table] = handler
        return self

    def rows(self, table, data):
        return self.on(table, lambda query: query_result(data))

    def fail(self, table, message="upstream unavailable"):
        def handler(query):
            raise rejected(message)
        return self.on(table, handler)

    def queries_for(self, table):
        return [query for query in self.queries if query.table == table]


def book_counts(counts_by_author, failing=()):
    """Handler answering head count queries on Books from a dict of author_id -> count."""
    def handler(query):
        author_id = dict(query.filters)["author_id"]
        if author_id in failing:
            raise rejected(f"count failed for {author_id}")
        return query_result(None, counts_by_author.get(author_id, 0))
    return handler


@pytest.fixture
def settings():
    """Configuration isolated from any local .env file."""
    return APIConfig(
        _env_file=None,
        supabase_url="https://project.supabase.co",
        supabase_anon_key="anon-key"
    )


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def verifier():
    """Identity verifier accepting every token."""
    mock = AsyncMock(spec=IdentityVerifier)
    mock.get_user.return_value = AuthenticatedUser(id="user-123", email="reader@example.com")
    return mock


@pytest.fixture
def make_client(settings, store, verifier):
    """Factory for a test client, optionally with different settings."""
    def factory(**overrides):
        app_settings = settings.model_copy(update=overrides) if overrides else settings
        app = create_app(settings=app_settings, store=store, identity_verifier=verifier)
        return TestClient(app)
    return factory


@pytest.fixture
def client(make_client):
    """Create test client."""
    return make_client()


@pytest.fixture
def auth_headers():
    return dict(AUTH_HEADERS)


@pytest.fixture
def count_handler():
    return book_counts
