"""
Client-side connector for a remote conversational agent.

Connects a session, sends prompts (single-shot and streaming), uploads
attachments, and caches replies so repeated prompts skip the network.
"""

from .cache import CacheProvider, MemoryCacheProvider
from .config import ConnectionSettings, create_settings, load_settings_yaml, settings_from_env
from .errors import (
    AssistantEndpointError,
    ConfigurationError,
    ConnectionError,
    RequestError,
    StreamError,
    TimeoutError,
)
from .llm import ServerConnection, check_connection
from .streaming import StreamingResponse

__version__ = "0.1.0"

__all__ = [
    "AssistantEndpointError",
    "CacheProvider",
    "ConfigurationError",
    "ConnectionError",
    "ConnectionSettings",
    "MemoryCacheProvider",
    "RequestError",
    "ServerConnection",
    "StreamError",
    "StreamingResponse",
    "TimeoutError",
    "check_connection",
    "create_settings",
    "load_settings_yaml",
    "settings_from_env",
]
