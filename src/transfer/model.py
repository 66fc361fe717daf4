from dataclasses import dataclass, field
from typing import Any

## Delta entries

class DeltaEntry:
    order: int

@dataclass(frozen=True)
class ReferenceEntry(DeltaEntry):
    """An item the server already stores, moved to `order`. Carries no bytes."""
    order: int
    ref_id: str
    url: str | None = None

@dataclass(frozen=True)
class InlineEntry(DeltaEntry):
    """A new item. `data` holds the raw bytes, they are base-64 encoded only on the wire."""
    order: int
    data: bytes
    content_type: str

    def __repr__(self) -> str:
        return f"InlineEntry(order={self.order}, content_type={self.content_type}, size={len(self.data)})"

@dataclass(frozen=True)
class TransferDelta:
    entries: list[DeltaEntry]
    removals: list[str] = field(default_factory=list)

    def references(self) -> list[ReferenceEntry]:
        return [e for e in self.entries if isinstance(e, ReferenceEntry)]

    def inlines(self) -> list[InlineEntry]:
        return [e for e in self.entries if isinstance(e, InlineEntry)]

## Request

@dataclass(frozen=True)
class SubmitRequest:
    delta: TransferDelta
    # opaque top level fields (productName, des, ...) passed through untouched
    metadata: dict[str, Any] = field(default_factory=dict)

## Wire

@dataclass
class WireBlob:
    """One element of `imagesBlob`. Non-null `data` makes it an inline entry, otherwise `id` references a stored item."""
    order: int
    id: str | None = None
    data: str | None = None
    fileType: str | None = None
    imageUrl: str | None = None

@dataclass
class WireRemoval:
    id: str

@dataclass
class WireRequest:
    imagesBlob: list[WireBlob]
    removeImages: list[WireRemoval] | None = None
