"""
FastAPI service exposing read-only catalog endpoints over a Supabase project.

This package provides:
- Authors endpoint (book-count filter, average price by country)
- Books endpoint (paginated listing, books joined with their authors)
- Bearer token verification against the Supabase auth API
- An async PostgREST client for the Authors/Books/Countries tables
"""

__version__ = "1.0.0"
