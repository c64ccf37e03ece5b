"""Root conftest — shared test configuration."""

import os

# Ensure tests never reach a real database or trust a production header name
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("IDENTITY_HEADER", "X-Auth-Subject")
os.environ.setdefault("LOG_FORMAT", "text")
