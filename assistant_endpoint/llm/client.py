"""
Session manager for the remote assistant agent.

ServerConnection is the only gateway between a prompt (or attachment) and
the agent API:

  - connect() / disconnect() with a handshake against the call endpoint
  - send_request(): cached single-shot call with one chat-completion fallback
  - send_streaming_request(): fills a StreamingResponse chunk by chunk
  - upload_file(): multipart upload, returns the server file id
  - list_models(): ids from the models endpoint

Usage:
    settings = ConnectionSettings(
        server_url="agent.example.com",
        api_key=os.environ["ASSISTANT_ENDPOINT_API_KEY"],
        agent_access_id="abc",
    )

    async with ServerConnection(settings) as conn:
        text = await conn.send_request("What is a closure?")

        file_id = await conn.upload_file("notes.txt", b"...")
        text = await conn.send_request("Summarize the notes", file_ids=[file_id])

        response = StreamingResponse().on_chunk_received(print)
        await conn.send_streaming_request("Write a poem", response=response)

Every network call fails fast with ConnectionError while the session is
not connected; nothing reconnects implicitly.
"""

import asyncio
import hashlib
import logging

import httpx

from ..cache import CacheProvider, MemoryCacheProvider
from ..config import ConnectionSettings
from ..errors import (
    AssistantEndpointError,
    ConfigurationError,
    ConnectionError,
    RequestError,
    StreamError,
    TimeoutError,
)
from ..streaming import StreamingResponse
from .codec import (
    build_call_payload,
    build_chat_payload,
    decode_reply,
    extract_file_id,
    is_message_content_complaint,
    parse_model_ids,
)

logger = logging.getLogger(__name__)

# Cached replies live for one hour
CACHE_TTL_SECONDS = 3600

# Message sent by connect() to prove the call endpoint accepts us
HANDSHAKE_MESSAGE = "ping"


def prompt_cache_key(prompt: str) -> str:
    """
    Cache key for a prompt.

    Only the prompt text is hashed. Attachments and parent message id are
    not part of the key, so the same prompt with different context shares
    one cached reply.
    """
    digest = hashlib.sha256(prompt.encode("utf-8")).hexdigest()
    return f"prompt_{digest}"


def _preview(text: str, limit: int = 50) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _reply_text(body: str) -> str:
    """Decode a reply body, logging which schema it matched."""
    reply = decode_reply(body)
    if reply.kind.is_structured:
        logger.debug(f"Reply decoded from {reply.kind.value} schema")
    else:
        logger.info(f"Unrecognised reply schema, returning raw body: {_preview(reply.raw_body, 200)}")
    return reply.text


class ServerConnection:
    """
    One logical session against the agent API.

    Args:
        settings: Validated connection settings (immutable for the session).
        cache: Cache provider; a fresh MemoryCacheProvider by default.
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests.
    """

    def __init__(
        self,
        settings: ConnectionSettings,
        cache: CacheProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if settings is None:
            raise ConfigurationError("Connection settings are required.")

        self.settings = settings
        self._cache = cache if cache is not None else MemoryCacheProvider()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def cache(self) -> CacheProvider:
        return self._cache

    # ════════════════════════════════════════════════════════════════════
    # CONNECTION LIFECYCLE
    # ════════════════════════════════════════════════════════════════════

    def _build_client(self) -> httpx.AsyncClient:
        if not self.settings.api_key:
            raise ConfigurationError("API key is not set.")

        headers = self.settings.auth_headers()
        for name, value in headers.items():
            # HTTP header names and values must be ASCII
            try:
                name.encode("ascii")
                value.encode("ascii")
            except UnicodeEncodeError as e:
                raise ConfigurationError(
                    f"Auth header {name!r} must be ASCII; check the API key and header settings."
                ) from e

        return httpx.AsyncClient(
            base_url=self.settings.server_url,
            timeout=httpx.Timeout(self.settings.timeout),
            headers=headers,
            params=self.settings.auth_params(),
            transport=self._transport,
        )

    async def _close_client(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def connect(self) -> bool:
        """
        (Re)build the transport and run the handshake.

        Posts a minimal call payload to the call endpoint. The session is
        connected if the server answers with a success status.

        Returns:
            The new connection state. Never raises.
        """
        self._connected = False
        try:
            await self._close_client()
            url = self.settings.build_url(self.settings.call_endpoint)
            self._client = self._build_client()

            response = await self._client.post(url, json=build_call_payload(HANDSHAKE_MESSAGE))
            self._connected = response.is_success

            if self._connected:
                logger.info(f"Connected to {self.settings.server_url}")
            else:
                logger.error(
                    f"Handshake rejected by {url}: {response.status_code} {response.text[:200]}"
                )
        except (ConfigurationError, httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Connection to {self.settings.server_url} failed: {e}")
            self._connected = False

        if not self._connected:
            await self._close_client()
        return self._connected

    async def disconnect(self) -> None:
        """Release the transport. Safe to call repeatedly."""
        was_connected = self._connected
        self._connected = False
        await self._close_client()
        if was_connected:
            logger.info("Connection closed")

    async def __aenter__(self) -> "ServerConnection":
        if not await self.connect():
            raise ConnectionError(f"Could not connect to {self.settings.server_url}")
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    def _require_connected(self) -> httpx.AsyncClient:
        if not self._connected or self._client is None:
            raise ConnectionError("Not connected to the server. Call connect() first.")
        return self._client

    # ════════════════════════════════════════════════════════════════════
    # HTTP HELPERS
    # ════════════════════════════════════════════════════════════════════

    async def _send(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> httpx.Response:
        """Issue one request, translating transport failures."""
        try:
            return await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TimeoutError(
                f"Request to {url} timed out after {self.settings.timeout}s"
            ) from e
        except httpx.TransportError as e:
            raise ConnectionError(f"Could not reach {url}: {e}") from e
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"Invalid endpoint URL {url!r}: {e}") from e
        except RuntimeError as e:
            # httpx refuses requests on a client closed mid-flight
            if client.is_closed:
                raise ConnectionError("Connection was closed during the request.") from e
            raise

    # ════════════════════════════════════════════════════════════════════
    # SINGLE-SHOT REQUESTS
    # ════════════════════════════════════════════════════════════════════

    async def send_request(
        self,
        prompt: str,
        file_ids: list[str] | None = None,
        parent_message_id: str | None = None,
    ) -> str:
        """
        Send a prompt and return the reply text.

        Cache-aside: a reply cached for the same prompt text is returned
        without a network call. Otherwise the simple-call payload goes to
        the call endpoint; if the server rejects it with a message-content
        validation complaint, the prompt is retried once as a chat
        completion. Successful replies are cached for an hour.

        Raises:
            ConnectionError: If not connected, or the server is unreachable.
            ConfigurationError: If the endpoint cannot be resolved.
            RequestError: If the call fails (the primary failure is reported
                even when the fallback also fails).
        """
        client = self._require_connected()

        cache_key = prompt_cache_key(prompt)
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.info(f"Cache hit for: {_preview(prompt)}")
            return cached

        url = self.settings.build_url(self.settings.call_endpoint)
        payload = build_call_payload(prompt, file_ids, parent_message_id)
        response = await self._send(client, "POST", url, json=payload)

        if response.is_success:
            text = _reply_text(response.text)
        else:
            primary_error = RequestError(response.status_code, response.text, url)
            if not is_message_content_complaint(response.text):
                logger.warning(f"Request rejected: {primary_error}")
                raise primary_error

            logger.info(
                f"Call endpoint rejected message content ({response.status_code}); "
                f"retrying as chat completion"
            )
            text = await self._send_chat_fallback(client, prompt, primary_error)

        self._cache.set(cache_key, text, ttl=CACHE_TTL_SECONDS)
        return text

    async def _send_chat_fallback(
        self, client: httpx.AsyncClient, prompt: str, primary_error: RequestError
    ) -> str:
        """One retry against the chat endpoint; re-raises the primary error on failure."""
        url = self.settings.build_url(self.settings.chat_endpoint)
        try:
            response = await self._send(client, "POST", url, json=build_chat_payload(prompt))
        except AssistantEndpointError as e:
            logger.warning(f"Chat fallback failed: {e}")
            raise primary_error from e

        if not response.is_success:
            logger.warning(f"Chat fallback rejected: {response.status_code} {response.text[:200]}")
            raise primary_error

        return _reply_text(response.text)

    # ════════════════════════════════════════════════════════════════════
    # STREAMING
    # ════════════════════════════════════════════════════════════════════

    async def send_streaming_request(
        self,
        prompt: str,
        file_ids: list[str] | None = None,
        parent_message_id: str | None = None,
        response: StreamingResponse | None = None,
    ) -> StreamingResponse:
        """
        Stream a chat completion into a StreamingResponse.

        Decoded body text is forwarded to append_chunk() as it arrives;
        no server-sent-event framing is parsed. Failures (rejection,
        network error, timeout of the whole call) are delivered through
        set_error() instead of being raised. Streamed replies are not cached.

        file_ids and parent_message_id are accepted for parity with
        send_request(); the chat-completion payload does not carry them.

        Args:
            response: Pre-subscribed response to fill; a new one by default.

        Returns:
            The response, already terminal (completed or errored).

        Raises:
            ConnectionError: If not connected.
        """
        client = self._require_connected()
        streaming = response if response is not None else StreamingResponse()
        url = self.settings.build_url(self.settings.streaming_endpoint)
        payload = build_chat_payload(prompt, stream=True)

        try:
            await asyncio.wait_for(
                self._read_stream(client, url, payload, streaming),
                timeout=self.settings.timeout,
            )
            logger.info(f"Streaming request finished ({len(streaming.accumulated_text)} chars)")
        except asyncio.TimeoutError:
            streaming.set_error(
                StreamError(f"Streaming request timed out after {self.settings.timeout}s")
            )
            logger.error(f"Streaming request to {url} timed out")
        except StreamError as e:
            streaming.set_error(e)
            logger.error(f"Streaming request failed: {e}")

        return streaming

    async def _read_stream(
        self, client: httpx.AsyncClient, url: str, payload: dict, streaming: StreamingResponse
    ) -> None:
        try:
            async with client.stream("POST", url, json=payload) as http_response:
                if not http_response.is_success:
                    body = (await http_response.aread()).decode("utf-8", errors="replace")
                    raise StreamError(
                        f"Server error {http_response.status_code}: {body}",
                        status_code=http_response.status_code,
                        body=body,
                    )
                async for chunk in http_response.aiter_text():
                    try:
                        streaming.append_chunk(chunk)
                    except Exception as e:
                        raise StreamError(f"Chunk observer failed: {e}") from e
        except httpx.HTTPError as e:
            raise StreamError(f"Stream interrupted: {e}") from e
        except RuntimeError as e:
            if client.is_closed:
                raise StreamError("Connection was closed during the stream.") from e
            raise

        streaming.complete()

    # ════════════════════════════════════════════════════════════════════
    # FILES & MODELS
    # ════════════════════════════════════════════════════════════════════

    async def upload_file(self, file_name: str, content: bytes) -> str:
        """
        Upload an attachment and return its server file id.

        The id is the "file_id" field of a JSON reply, or the raw body
        when the server answers with something else.

        Raises:
            ValueError: If file_name is blank.
            ConnectionError: If not connected.
            RequestError: If the server rejects the upload.
        """
        client = self._require_connected()
        if not file_name or not file_name.strip():
            raise ValueError("file_name must not be empty")

        url = self.settings.build_url(self.settings.files_endpoint)
        logger.info(f"Uploading file: {file_name} ({len(content)} bytes)")
        response = await self._send(
            client,
            "POST",
            url,
            files={"file": (file_name, content, "application/octet-stream")},
        )
        if not response.is_success:
            raise RequestError(response.status_code, response.text, url)

        file_id = extract_file_id(response.text)
        logger.info(f"Uploaded: {file_name} -> {file_id}")
        return file_id

    async def list_models(self) -> list[str]:
        """Sorted model ids served by the agent."""
        client = self._require_connected()
        url = self.settings.build_url(self.settings.models_endpoint)
        response = await self._send(client, "GET", url)
        if not response.is_success:
            raise RequestError(response.status_code, response.text, url)
        return parse_model_ids(response.text)

    # ════════════════════════════════════════════════════════════════════
    # CACHE
    # ════════════════════════════════════════════════════════════════════

    def clear_cache(self) -> None:
        """Forget every cached reply."""
        self._cache.clear()
        logger.info("Cache cleared")

    def __repr__(self) -> str:
        state = "connected" if self._connected else "disconnected"
        return f"ServerConnection({self.settings.server_url}, {state})"


async def check_connection(
    settings: ConnectionSettings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Connect a throwaway session and report whether the handshake worked."""
    conn = ServerConnection(settings, transport=transport)
    try:
        return await conn.connect()
    finally:
        await conn.disconnect()
