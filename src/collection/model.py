import os
import uuid
from dataclasses import dataclass, field
from typing import Protocol

from src.common.errors import UnreadableSource

## Config

@dataclass(frozen=True)
class CollectionConfig:
    max_items: int = 10
    allowed_content_types: list[str] = field(default_factory=lambda: ["image/jpeg", "image/png"])

## Sources

class MediaSource(Protocol):
    def read(self) -> bytes:
        ...

@dataclass(frozen=True)
class BytesSource:
    data: bytes

    def read(self) -> bytes:
        return self.data

@dataclass(frozen=True)
class FileSource:
    """Bytes backed by a local file, read lazily when the delta is built."""
    path: str

    def read(self) -> bytes:
        try:
            with open(self.path, 'rb') as f:
                return f.read()
        except OSError as e:
            raise UnreadableSource("Cannot read media source", path=self.path, reason=str(e)) from e

    @property
    def filename(self) -> str:
        return os.path.basename(self.path)

## Items

class MediaItem:
    identity: str
    content_type: str

@dataclass(frozen=True)
class PersistedItem(MediaItem):
    # identity is the server assigned id
    identity: str
    url: str
    content_type: str = "image/png"

@dataclass(frozen=True)
class PendingItem(MediaItem):
    # identity is a client side placeholder
    identity: str
    source: MediaSource
    content_type: str

def new_placeholder_id() -> str:
    return f"local-{uuid.uuid4().hex}"
