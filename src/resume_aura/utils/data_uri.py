"""Data-URI helpers for inline binary payloads."""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass

DEFAULT_MIME_TYPE = "image/jpeg"

_PREFIX = re.compile(r"^data:(.*?);base64,")


@dataclass(frozen=True)
class InlinePayload:
    """A MIME type plus its base64-encoded body."""

    mime_type: str
    data: str

    @property
    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data)


def split_data_uri(uri: str) -> InlinePayload:
    """Split ``data:<mime>;base64,<payload>`` into its parts.

    A missing MIME prefix defaults to ``image/jpeg``; a string without a comma
    is taken to be the bare payload.
    """
    match = _PREFIX.match(uri)
    mime_type = match.group(1) if match and match.group(1) else DEFAULT_MIME_TYPE
    _, sep, payload = uri.partition(",")
    return InlinePayload(mime_type=mime_type, data=payload if sep else uri)


def to_data_uri(data: bytes | str, mime_type: str = "image/png") -> str:
    """Encode bytes (or an already base64 string) as a data URI."""
    if isinstance(data, bytes):
        data = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{data}"
