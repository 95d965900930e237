import os
import warnings
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./booking_engine.db")

# Connection pool and query limits
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "30"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
# Applied as statement_timeout on PostgreSQL connections; 0 disables it
DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "10000"))
DB_LOG_SLOW_QUERIES = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
DB_SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

# Recurring group writes: "transaction" (single atomic commit) or
# "compensating" (parent commit, then children, delete-on-failure)
RECURRING_WRITE_MODE = os.getenv("RECURRING_WRITE_MODE", "transaction").lower()
if RECURRING_WRITE_MODE not in ("transaction", "compensating"):
    warnings.warn(
        f"Unknown RECURRING_WRITE_MODE={RECURRING_WRITE_MODE!r}, falling back to 'transaction'",
        RuntimeWarning,
        stacklevel=2,
    )
    RECURRING_WRITE_MODE = "transaction"

# CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")
