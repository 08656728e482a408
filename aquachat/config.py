"""Environment-driven settings for the chat server."""

import os


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_cors_origins() -> list[str]:
    """Get CORS origins from environment variable or use default."""
    cors_origins_str = os.environ.get("AQUACHAT_CORS_ORIGINS", "http://localhost:3001")
    origins = [origin.strip() for origin in cors_origins_str.split(",") if origin.strip()]
    return origins if origins else ["http://localhost:3001"]


CORS_ORIGINS = _get_cors_origins()

# Ended advice sessions are evicted after this many seconds (0 keeps them forever).
SESSION_RETENTION_SECONDS = _float_env("AQUACHAT_SESSION_RETENTION", 60 * 60)

# Queued users expire after this many seconds without a match (0 disables expiry).
QUEUE_IDLE_TIMEOUT_SECONDS = _float_env("AQUACHAT_QUEUE_IDLE_TIMEOUT", 0)

CLEANUP_INTERVAL = _float_env("AQUACHAT_CLEANUP_INTERVAL", 30)

MAX_MESSAGE_CHARS = int(_float_env("AQUACHAT_MAX_MESSAGE_CHARS", 2000))
MAX_USERNAME_CHARS = 30

# Payloads buffered per connection before a slow reader is disconnected.
OUTBOX_MAX_MESSAGES = int(_float_env("AQUACHAT_OUTBOX_SIZE", 256))
