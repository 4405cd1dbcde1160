"""
Streaming response accumulator.

A StreamingResponse collects the text of one streaming call and tells
observers about it through three callback slots:

    chunk received  -> callback(chunk: str)
    completed       -> callback(full_text: str)
    errored         -> callback(error: Exception)

Usage:
    response = StreamingResponse()
    response.on_chunk_received(lambda chunk: print(chunk, end="", flush=True))
    response.on_completed(lambda text: print(f"\\n[{len(text)} chars]"))
    response.on_error(lambda err: print(f"stream failed: {err}"))

    await conn.send_streaming_request("Write a poem", response=response)

Once completed or errored the response is terminal: appends are ignored
and no further notification fires. reset() is the only way back.

Callbacks run synchronously on the caller of append_chunk / complete /
set_error. The class holds no lock; the session feeds it from a single
read loop. Add locking before sharing one instance between writers.
"""

import logging
from typing import Callable

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], None]
CompletedCallback = Callable[[str], None]
ErrorCallback = Callable[[Exception], None]


class StreamingResponse:
    """Append-only text buffer with chunk/completed/error notifications."""

    def __init__(self):
        self._chunks: list[str] = []
        self._completed = False
        self._errored = False
        self._last_error: Exception | None = None

        self._chunk_callbacks: list[ChunkCallback] = []
        self._completed_callbacks: list[CompletedCallback] = []
        self._error_callbacks: list[ErrorCallback] = []

    # ── Observer registration ──

    def on_chunk_received(self, callback: ChunkCallback) -> "StreamingResponse":
        self._chunk_callbacks.append(callback)
        return self

    def on_completed(self, callback: CompletedCallback) -> "StreamingResponse":
        self._completed_callbacks.append(callback)
        return self

    def on_error(self, callback: ErrorCallback) -> "StreamingResponse":
        self._error_callbacks.append(callback)
        return self

    # ── State ──

    @property
    def accumulated_text(self) -> str:
        return "".join(self._chunks)

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def errored(self) -> bool:
        return self._errored

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def is_terminal(self) -> bool:
        return self._completed or self._errored

    # ── Writers ──

    def append_chunk(self, text: str) -> None:
        """Append text and notify; ignored when empty or terminal."""
        if not text or self.is_terminal:
            return

        self._chunks.append(text)
        for callback in self._chunk_callbacks:
            callback(text)

    def complete(self) -> None:
        """Mark the stream finished and deliver the full text once."""
        if self.is_terminal:
            return

        self._completed = True
        full_text = self.accumulated_text
        for callback in self._completed_callbacks:
            callback(full_text)

    def set_error(self, error: Exception) -> None:
        """Mark the stream failed and deliver the error once."""
        if self.is_terminal:
            logger.debug(f"Ignoring error on terminal stream: {error}")
            return

        self._errored = True
        self._last_error = error
        for callback in self._error_callbacks:
            callback(error)

    def reset(self) -> None:
        """Return to the initial state. Registered callbacks are kept."""
        self._chunks = []
        self._completed = False
        self._errored = False
        self._last_error = None

    def __repr__(self) -> str:
        state = "completed" if self._completed else "errored" if self._errored else "open"
        return f"StreamingResponse(state={state}, chars={len(self.accumulated_text)})"
