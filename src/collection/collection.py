from dataclasses import dataclass, field, replace
import mimetypes
from typing import Iterator

from src.collection.model import (
    BytesSource,
    CollectionConfig,
    FileSource,
    MediaItem,
    MediaSource,
    PendingItem,
    PersistedItem,
    new_placeholder_id,
)
from src.common.errors import CapacityExceeded, DuplicateIdentity, OutOfRange, UnsupportedContentType
from src.transfer.codec import build_delta
from src.transfer.model import TransferDelta

@dataclass(frozen=True)
class Collection:
    """Ordered collection of media items being edited in one session.

    Every mutating operation returns a new Collection and leaves the receiver untouched, so a
    failed operation can never leave the caller with a half applied change.

    The tuple order of `items` is the only order; an item's position is its index and its wire
    order is position + 1. `removed` holds the persisted items dropped during the session, they
    become explicit deletions when the delta is built.
    """

    config: CollectionConfig = field(default_factory=CollectionConfig)
    items: tuple[MediaItem, ...] = ()
    removed: tuple[PersistedItem, ...] = ()

    @staticmethod
    def empty(config: CollectionConfig | None = None) -> 'Collection':
        return Collection(config=config or CollectionConfig())

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[MediaItem]:
        return iter(self.items)

    def __getitem__(self, position: int) -> MediaItem:
        self._check_position(position)
        return self.items[position]

    def identities(self) -> list[str]:
        return [item.identity for item in self.items]

    def position_of(self, identity: str) -> int:
        for idx, item in enumerate(self.items):
            if item.identity == identity:
                return idx
        raise OutOfRange(f"No item with identity {identity}", identity=identity)

    def hydrate(self, items: list[PersistedItem]) -> 'Collection':
        """Replace the collection with the server's items, in the server's order."""
        if len(items) > self.config.max_items:
            raise CapacityExceeded(
                "Stored collection exceeds capacity",
                size=len(items),
                max_items=self.config.max_items
            )
        seen = set()
        for item in items:
            if not isinstance(item, PersistedItem):
                raise TypeError(f"hydrate expects PersistedItem, got {type(item).__name__}")
            if item.identity in seen:
                raise DuplicateIdentity("Duplicate identity in stored collection", identity=item.identity)
            seen.add(item.identity)
        return replace(self, items=tuple(items), removed=())

    def add(self, data: bytes | MediaSource, content_type: str) -> tuple['Collection', str]:
        """Append a new pending item. Returns the new collection and the item's placeholder id."""
        collection, ids = self.add_many([(data, content_type)])
        return collection, ids[0]

    def add_many(self, batch: list[tuple[bytes | MediaSource, str]]) -> tuple['Collection', list[str]]:
        """Append a batch of pending items.

        The batch is admitted whole or not at all: if it would push the collection past capacity
        nothing is added.
        """
        if len(self.items) + len(batch) > self.config.max_items:
            raise CapacityExceeded(
                "Adding items would exceed capacity",
                size=len(self.items),
                requested=len(batch),
                max_items=self.config.max_items
            )
        new_items = []
        for data, content_type in batch:
            self._check_content_type(content_type)
            source = BytesSource(data) if isinstance(data, (bytes, bytearray)) else data
            new_items.append(PendingItem(
                identity=new_placeholder_id(),
                source=source,
                content_type=content_type
            ))
        collection = replace(self, items=self.items + tuple(new_items))
        return collection, [item.identity for item in new_items]

    def add_file(self, path: str, content_type: str | None = None) -> tuple['Collection', str]:
        return self.add(FileSource(path), content_type or _guess_content_type(path))

    def add_files(self, paths: list[str]) -> tuple['Collection', list[str]]:
        """Append local files as one batch, content types guessed from the file names."""
        return self.add_many([(FileSource(path), _guess_content_type(path)) for path in paths])

    def remove(self, position: int) -> 'Collection':
        self._check_position(position)
        item = self.items[position]
        items = self.items[:position] + self.items[position + 1:]
        removed = self.removed
        if isinstance(item, PersistedItem):
            removed = removed + (item,)
        return replace(self, items=items, removed=removed)

    def reorder(self, from_position: int, to_position: int) -> 'Collection':
        """Move the item at from_position so it ends up at to_position.

        Splice semantics: the item is taken out first, then inserted into the remaining sequence, so
        to_position may equal len(self) - 1 (the post removal length) to move the item last.
        """
        self._check_position(from_position)
        if isinstance(to_position, bool) or not 0 <= to_position < len(self.items):
            raise OutOfRange(
                "Reorder target out of range",
                position=to_position,
                size=len(self.items)
            )
        items = list(self.items)
        item = items.pop(from_position)
        items.insert(to_position, item)
        return replace(self, items=tuple(items))

    def build_delta(self, max_workers: int | None = None) -> TransferDelta:
        return build_delta(self, max_workers=max_workers)

    def _check_position(self, position: int) -> None:
        # bool is an int subclass
        if not isinstance(position, int) or isinstance(position, bool) or not 0 <= position < len(self.items):
            raise OutOfRange("Position out of range", position=position, size=len(self.items))

    def _check_content_type(self, content_type: str) -> None:
        allowed = self.config.allowed_content_types
        if allowed and content_type not in allowed:
            raise UnsupportedContentType(
                f"Content type {content_type} is not allowed",
                content_type=content_type,
                allowed=allowed
            )

def _guess_content_type(path: str) -> str:
    content_type, _ = mimetypes.guess_type(path)
    if content_type is None:
        raise UnsupportedContentType("Could not determine content type", path=path)
    return content_type
