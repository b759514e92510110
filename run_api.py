#!/usr/bin/env python3
"""
Script to run the catalog API server.
"""

import uvicorn

from catalog_api.config import config


def main():
    """Run the API server."""
    print("🚀 Starting Catalog API Server")
    print(f"📡 Host: {config.host}")
    print(f"🔌 Port: {config.port}")
    print(f"🌐 Debug: {config.debug}")
    print(f"📚 Supabase: {config.supabase_url or '(not configured)'}")
    print("=" * 50)

    uvicorn.run(
        "catalog_api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
