from dataclasses import dataclass, field
from typing import Any

## Config

@dataclass
class MediastoreConfig:
    base_dir: str
    # prefix for item urls handed back to clients, items are served by static hosting
    public_url: str = ""

## Schema

@dataclass(frozen=True)
class StoredItem:
    id: str
    order: int
    filename: str
    content_type: str

@dataclass
class Manifest:
    items: list[StoredItem] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    updated_at: float | None = None

    def by_id(self) -> dict[str, StoredItem]:
        return {item.id: item for item in self.items}

## Plan

@dataclass(frozen=True)
class KeptItem:
    """An already stored item that moves to `order`."""
    item: StoredItem
    order: int

@dataclass(frozen=True)
class NewItem:
    id: str
    order: int
    data: bytes
    content_type: str

PlannedItem = KeptItem | NewItem
