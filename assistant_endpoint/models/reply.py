"""
Decoded reply model.

The remote agent answers in one of several schemas depending on which
endpoint served the call. The codec decodes a body into a Reply whose
kind records which schema matched.
"""

from dataclasses import dataclass
from enum import Enum


class ReplyKind(str, Enum):
    """Which response schema produced the reply text."""
    MESSAGE = "message"                  # {"message": "..."}
    CHOICE_MESSAGE = "choice_message"    # {"choices": [{"message": {"content": "..."}}]}
    CHOICE_TEXT = "choice_text"          # {"choices": [{"text": "..."}]}
    RAW = "raw"                          # anything else, body verbatim

    @property
    def is_structured(self) -> bool:
        return self is not ReplyKind.RAW


@dataclass
class Reply:
    """Reply text plus the schema it was extracted from."""
    kind: ReplyKind
    text: str
    raw_body: str = ""

    def __str__(self) -> str:
        return self.text
