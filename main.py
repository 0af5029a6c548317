#!/usr/bin/env python3
"""
Formdesk -- registration, cookie sessions and business form submission.

Usage:
  python main.py
  python main.py --reload

Environment variables (see core/config.py for the full list):
  ENVIRONMENT   "development" or "production" (default). Production requires
                SECRET_KEY and sets the Secure flag on the session cookie.
  SECRET_KEY    Session signing secret, at least 32 characters.
  DATABASE_URL  SQLAlchemy URL. Default: sqlite:///formdesk.db
  HOST / PORT   Listening address. Default: 127.0.0.1:3000
"""

import argparse

import uvicorn

from core.config import get_settings


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Formdesk API server.")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only).")
    args = parser.parse_args()

    settings = get_settings()
    uvicorn.run(
        "api.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
