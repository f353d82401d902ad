#!/usr/bin/env python3
"""
Startup script for the cafe orders API.

Usage:
    # Run with defaults (DATABASE_URL from the environment or .env)
    python run_server.py

    # Run on another port with auto-reload for development
    python run_server.py --port 8001 --reload

    # Point at a different database
    python run_server.py --database-url sqlite:///./data/cafe.db
"""

import argparse
import os


def main():
    parser = argparse.ArgumentParser(
        description="Run the cafe checkout and order lifecycle API"
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        "-p",
        type=int,
        default=8000,
        help="Port to run on (default: 8000)",
    )
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy database URL (overrides DATABASE_URL)",
    )
    parser.add_argument(
        "--reload",
        "-r",
        action="store_true",
        help="Enable auto-reload for development",
    )

    args = parser.parse_args()

    # Must be set before cafe_orders.config is imported by the app
    if args.database_url:
        os.environ["DATABASE_URL"] = args.database_url

    database_url = os.environ.get("DATABASE_URL", "sqlite:///./cafe_orders.db")
    if database_url.startswith("sqlite:///./"):
        db_dir = os.path.dirname(database_url.replace("sqlite:///./", ""))
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    print(f"\n{'=' * 50}")
    print("Starting: Cafe Orders API")
    print(f"Address:  http://{args.host}:{args.port}")
    print(f"Database: {database_url}")
    print(f"{'=' * 50}\n")

    import uvicorn

    uvicorn.run(
        "cafe_orders.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
