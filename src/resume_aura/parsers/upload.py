"""Load an uploaded résumé file as a data URI with a reprocessing cache key."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path

from resume_aura.utils.data_uri import to_data_uri

SUPPORTED_MIME_TYPES = (
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/heic",
    "image/heif",
)


@dataclass(frozen=True)
class Upload:
    """An uploaded file: identity (name, size, mtime in ms) plus its content."""

    name: str
    size: int
    modified: int
    data_uri: str

    @property
    def cache_key(self) -> str:
        return f"{self.name}-{self.size}-{self.modified}"


def guess_mime_type(path: Path) -> str:
    mime, _ = mimetypes.guess_type(path.name)
    return mime or "image/jpeg"


def load_upload(file_path: str | Path) -> Upload:
    """Read a résumé image or PDF from disk."""
    path = Path(file_path)
    mime = guess_mime_type(path)
    if mime not in SUPPORTED_MIME_TYPES:
        raise ValueError(f"Unsupported file format: {path.suffix or path.name}")
    data = path.read_bytes()
    stat = path.stat()
    return Upload(
        name=path.name,
        size=len(data),
        modified=int(stat.st_mtime * 1000),
        data_uri=to_data_uri(data, mime),
    )
