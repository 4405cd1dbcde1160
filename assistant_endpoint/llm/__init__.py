"""Session manager and wire codec for the agent API."""

from .client import CACHE_TTL_SECONDS, ServerConnection, check_connection, prompt_cache_key

__all__ = [
    "CACHE_TTL_SECONDS",
    "ServerConnection",
    "check_connection",
    "prompt_cache_key",
]
