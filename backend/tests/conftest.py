"""Root conftest — shared test configuration."""

import os
import tempfile

# Ensure tests never reach a real database, mail provider or upload dir
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-for-hs256")
os.environ["EMAIL_API_KEY"] = ""
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="courseportal-uploads-")
