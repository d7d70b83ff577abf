"""Root conftest — shared test configuration."""

import os

# Keep tests off the real database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
