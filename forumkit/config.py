"""
Configuration for the forum media and rate limiting services.

Values can be overridden through environment variables so deployments
can tune budgets without code changes.
"""
import os


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return int(value)


# Image compression
MAX_INPUT_BYTES = _env_int("FORUMKIT_MAX_INPUT_BYTES", 10 * 1024 * 1024)  # 10MB
MAX_OUTPUT_BYTES = _env_int("FORUMKIT_MAX_OUTPUT_BYTES", 500 * 1024)      # 500KB
MAX_WIDTH = 1200
MAX_HEIGHT = 1200
THUMB_SIZE = 400

INITIAL_QUALITY = 0.75
FALLBACK_QUALITY = 0.6
THUMB_QUALITY = 0.5

# Alpha channel sampling
ALPHA_SAMPLE_STRIDE = _env_int("FORUMKIT_ALPHA_SAMPLE_STRIDE", 100)
ALPHA_OPAQUE_THRESHOLD = 250

# Photo storage
MAX_STORED_BYTES = _env_int("FORUMKIT_MAX_STORED_BYTES", 500 * 1024)
STORAGE_ROOT = os.environ.get("FORUMKIT_STORAGE_ROOT", "photos")

# Rate limiting
CLEANUP_INTERVAL_MS = 5 * 60 * 1000
HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000

# Request identity headers set by the upstream gateway
USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"

VERSION = "1.0.0"
