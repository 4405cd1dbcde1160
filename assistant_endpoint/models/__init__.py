"""Data models for the assistant endpoint connector."""

from .reply import Reply, ReplyKind

__all__ = [
    "Reply",
    "ReplyKind",
]
