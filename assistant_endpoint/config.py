"""
Connection settings for the assistant endpoint connector.

A ConnectionSettings instance is validated once when it is built and is
immutable afterwards; a session picks it up at construction, so changed
settings need a new session.

There are three ways to build settings:

1. **Directly**: ``ConnectionSettings(server_url=..., api_key=..., agent_access_id=...)``.
2. **From UI input**: ``create_settings(url, key, timeout=...)`` adds the
   blank-field checks and the minimum timeout rule.
3. **From the environment or a YAML profile**: ``settings_from_env()`` or
   ``load_settings_yaml("profiles/agent.yaml")``.
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from urllib.parse import quote, urlsplit

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Placeholder substituted with the agent access id in every endpoint template
AGENT_PLACEHOLDER = "{agent_access_id}"

DEFAULT_TIMEOUT = 30.0

# Anything shorter is ignored by create_settings()
MIN_TIMEOUT = 1.0

DEFAULT_CALL_ENDPOINT = "/api/v1/cloud-ai/agents/{agent_access_id}/call"
DEFAULT_CHAT_ENDPOINT = "/api/v1/cloud-ai/agents/{agent_access_id}/v1/chat/completions"
DEFAULT_STREAMING_ENDPOINT = "/api/v1/cloud-ai/agents/{agent_access_id}/v1/chat/completions"
DEFAULT_MODELS_ENDPOINT = "/api/v1/cloud-ai/agents/{agent_access_id}/v1/models"
DEFAULT_FILES_ENDPOINT = "/api/v1/cloud-ai/agents/{agent_access_id}/v1/files"

# Environment variable names read by settings_from_env()
ENV_SERVER_URL = "ASSISTANT_ENDPOINT_SERVER_URL"
ENV_API_KEY = "ASSISTANT_ENDPOINT_API_KEY"
ENV_AGENT_ID = "ASSISTANT_ENDPOINT_AGENT_ID"
ENV_TIMEOUT = "ASSISTANT_ENDPOINT_TIMEOUT"


def normalize_server_url(url: str | None) -> str:
    """
    Normalize a user-supplied server URL to ``scheme://host[:port]``.

    A missing scheme defaults to https. Path, query and trailing slash
    are dropped.

    Raises:
        ConfigurationError: If the URL is empty or cannot be parsed.
    """
    if url is None or not url.strip():
        raise ConfigurationError("Server URL must not be empty.")

    url = url.strip()
    if not url.lower().startswith(("http://", "https://")):
        if "://" in url:
            raise ConfigurationError(f"Unsupported URL scheme: {url!r}")
        url = "https://" + url

    try:
        parts = urlsplit(url)
        # .port raises ValueError for a non-numeric or out-of-range port
        parts.port
    except ValueError as e:
        raise ConfigurationError(f"Invalid server URL: {url!r} ({e})") from e

    if not parts.hostname or any(c.isspace() for c in parts.netloc):
        raise ConfigurationError(f"Invalid server URL: {url!r}")

    return f"{parts.scheme.lower()}://{parts.netloc}".rstrip("/")


@dataclass(frozen=True)
class ConnectionSettings:
    """Everything a session needs to reach the remote assistant."""
    server_url: str
    api_key: str = ""
    timeout: float = DEFAULT_TIMEOUT      # seconds, covers the whole call
    use_tls: bool = True                  # informational only

    # Endpoint path templates, each containing {agent_access_id}
    call_endpoint: str = DEFAULT_CALL_ENDPOINT
    chat_endpoint: str = DEFAULT_CHAT_ENDPOINT
    streaming_endpoint: str = DEFAULT_STREAMING_ENDPOINT
    models_endpoint: str = DEFAULT_MODELS_ENDPOINT
    files_endpoint: str = DEFAULT_FILES_ENDPOINT

    # Auth: header "<name>: <scheme> <key>" or ?<param>=<key>
    auth_header_name: str = "Authorization"
    auth_scheme: str = "Bearer"
    use_api_key_as_query_param: bool = False
    api_key_query_param_name: str = "api_key"

    agent_access_id: str = ""

    def __post_init__(self):
        object.__setattr__(self, "server_url", normalize_server_url(self.server_url))

    def build_url(self, template: str) -> str:
        """
        Resolve an endpoint template into an absolute URL.

        Raises:
            ConfigurationError: If the agent access id is empty.
        """
        if not self.agent_access_id or not self.agent_access_id.strip():
            raise ConfigurationError(
                "Agent access id is not set; cannot resolve endpoint "
                f"template {template!r}."
            )
        if not self.server_url:
            raise ConfigurationError("Server URL is not set.")

        path = template.replace(AGENT_PLACEHOLDER, quote(self.agent_access_id.strip(), safe=""))
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.server_url}{path}"

    def auth_headers(self) -> dict:
        """Default headers for the transport (empty in query-param mode)."""
        if self.use_api_key_as_query_param:
            return {}
        value = f"{self.auth_scheme} {self.api_key}" if self.auth_scheme else self.api_key
        return {self.auth_header_name: value}

    def auth_params(self) -> dict:
        """Default query params for the transport (empty in header mode)."""
        if self.use_api_key_as_query_param:
            return {self.api_key_query_param_name: self.api_key}
        return {}

    def __repr__(self) -> str:
        # Keep the key out of logs and tracebacks
        return (
            f"ConnectionSettings(server_url='{self.server_url}', "
            f"agent_access_id='{self.agent_access_id}', timeout={self.timeout})"
        )


def create_settings(
    server_url: str,
    api_key: str,
    timeout: float | None = None,
    use_tls: bool | None = None,
    **overrides,
) -> ConnectionSettings:
    """
    Build settings from interactive input.

    Args:
        server_url: Server address; scheme is optional.
        api_key: API key; must not be blank.
        timeout: Seconds. Values below MIN_TIMEOUT are ignored.
        use_tls: Informational TLS flag.
        **overrides: Any other ConnectionSettings field.

    Raises:
        ConfigurationError: If the URL or API key is blank or invalid.
    """
    if not server_url or not server_url.strip():
        raise ConfigurationError("Server URL must not be empty.")
    if not api_key or not api_key.strip():
        raise ConfigurationError("API key must not be empty.")

    kwargs = dict(overrides)
    if timeout is not None and timeout >= MIN_TIMEOUT:
        kwargs["timeout"] = float(timeout)
    elif timeout is not None:
        logger.warning(f"Ignoring timeout {timeout}s (minimum is {MIN_TIMEOUT}s)")
    if use_tls is not None:
        kwargs["use_tls"] = use_tls

    return ConnectionSettings(server_url=server_url.strip(), api_key=api_key.strip(), **kwargs)


def settings_from_env(**overrides) -> ConnectionSettings:
    """
    Build settings from ASSISTANT_ENDPOINT_* environment variables.

    Keyword overrides win over the environment; None values are skipped.
    """
    values = {
        "server_url": os.environ.get(ENV_SERVER_URL, ""),
        "api_key": os.environ.get(ENV_API_KEY, ""),
        "agent_access_id": os.environ.get(ENV_AGENT_ID, ""),
    }
    raw_timeout = os.environ.get(ENV_TIMEOUT)
    if raw_timeout:
        try:
            values["timeout"] = float(raw_timeout)
        except ValueError:
            raise ConfigurationError(f"{ENV_TIMEOUT} must be a number, got {raw_timeout!r}")

    values.update({k: v for k, v in overrides.items() if v is not None})
    return ConnectionSettings(**values)


# ════════════════════════════════════════════════════════════════════════════
# YAML PROFILE LOADER
# ════════════════════════════════════════════════════════════════════════════


def load_settings_yaml(yaml_path: str | Path, **overrides) -> ConnectionSettings:
    """
    Load a YAML connection profile.

    Example profile::

        server_url: agent.example.com
        api_key: sk-...
        agent_access_id: abc
        timeout: 60
        call_endpoint: /agents/{agent_access_id}/call

    Unknown keys are logged and ignored. Keyword overrides (None skipped)
    win over the file.

    Raises:
        FileNotFoundError: If the profile does not exist.
        ConfigurationError: If the YAML is empty, not a mapping, or invalid.
    """
    import yaml

    yaml_path = Path(yaml_path)
    if not yaml_path.exists():
        raise FileNotFoundError(f"Connection profile not found: {yaml_path}")

    with open(yaml_path) as f:
        data = yaml.safe_load(f)

    if not data or not isinstance(data, dict):
        raise ConfigurationError(f"Empty or invalid YAML: {yaml_path}")

    known = {f.name for f in fields(ConnectionSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning(f"Ignoring unknown keys in {yaml_path}: {', '.join(unknown)}")

    values = {k: v for k, v in data.items() if k in known}
    if "timeout" in values:
        values["timeout"] = float(values["timeout"])
    for key in ("api_key", "agent_access_id"):
        if key in values and values[key] is not None:
            values[key] = str(values[key])

    values.update({k: v for k, v in overrides.items() if v is not None})
    if "server_url" not in values:
        raise ConfigurationError(f"Profile {yaml_path} has no server_url")

    logger.info(f"Connection profile loaded: {yaml_path}")
    return ConnectionSettings(**values)

