"""
Runtime configuration read from environment variables.

All settings are resolved once at import time. Malformed values fall back
to their defaults instead of failing startup.
"""

import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


# ──────────────────────────────────────────────────────────────
# Storage
# ──────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./gateprep.db")
SQLITE_BUSY_TIMEOUT_SEC = _env_float("SQLITE_BUSY_TIMEOUT_SEC", 30.0)

# ──────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ──────────────────────────────────────────────────────────────
# Numeric answer (NAT) comparison
# ──────────────────────────────────────────────────────────────
NAT_ABS_TOL = _env_float("NAT_ABS_TOL", 0.01)
NAT_REL_TOL = _env_float("NAT_REL_TOL", 0.001)
NAT_TEXT_CASE_SENSITIVE = _env_bool("NAT_TEXT_CASE_SENSITIVE", True)

# ──────────────────────────────────────────────────────────────
# Test sessions
# ──────────────────────────────────────────────────────────────
SESSION_DURATION_SEC = _env_int("SESSION_DURATION_SEC", 60 * 60)
MAX_IMPORT_BATCH = _env_int("MAX_IMPORT_BATCH", 200)

# ──────────────────────────────────────────────────────────────
# HTTP
# ──────────────────────────────────────────────────────────────
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
