"""
Exception hierarchy for the assistant endpoint connector.

Exception Hierarchy:
  AssistantEndpointError (base)
  ├── ConfigurationError   - invalid URL, missing agent id or API key
  ├── ConnectionError      - handshake failed, not connected, network issues
  │   └── TimeoutError     - request took longer than the configured timeout
  ├── RequestError         - server answered with a non-success status
  └── StreamError          - streaming failure (delivered, never raised)
"""


class AssistantEndpointError(Exception):
    """
    Base exception for all connector errors.

    Catch this to handle every failure the connector can raise:

        try:
            reply = await conn.send_request("Hello")
        except AssistantEndpointError as e:
            print(f"Assistant error: {e}")
    """
    pass


class ConfigurationError(AssistantEndpointError):
    """
    Raised when connection settings are missing or invalid.

    Common causes:
    - Server URL is empty or cannot be parsed
    - Agent access id is not set, so endpoint templates cannot be resolved
    - API key is empty

    Never retried: fix the settings and build a new session.
    """
    pass


class ConnectionError(AssistantEndpointError):
    """
    Raised when the session is not usable.

    Common causes:
    - send/stream/upload called before connect() or after disconnect()
    - The server could not be reached (DNS, refused connection, TLS)
    - The transport was closed while a request was in flight

    Resolution:
    1. Call connect() again and check its result
    2. Verify the server URL and network access
    """
    pass


class TimeoutError(ConnectionError):
    """
    Raised when a request exceeds the configured timeout.

    Resolution:
    1. Increase ConnectionSettings.timeout
    2. Retry once the server has warmed up
    """
    pass


class RequestError(AssistantEndpointError):
    """
    Raised when the server answers with a non-success HTTP status.

    Attributes:
    ----------
    status_code : int
        HTTP status returned by the server.
    body : str
        Raw response body, kept verbatim for diagnostics.
    url : str
        The endpoint that rejected the request.
    """

    def __init__(self, status_code: int, body: str, url: str = ""):
        self.status_code = status_code
        self.body = body
        self.url = url
        super().__init__(f"Server error {status_code}: {body}")


class StreamError(AssistantEndpointError):
    """
    Failure of a streaming request.

    Never raised out of send_streaming_request(); it is handed to
    StreamingResponse.set_error() so observers see failures the same way
    they see completion. status_code and body are set when the server
    rejected the request outright.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)
