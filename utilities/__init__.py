"""
Shared utilities for the catalog API (structured logging).
"""
