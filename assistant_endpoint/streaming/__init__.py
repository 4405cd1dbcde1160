"""Observable accumulator for streaming replies."""

from .response import StreamingResponse

__all__ = ["StreamingResponse"]
