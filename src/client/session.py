from typing import Any

from src.collection.collection import Collection
from src.collection.model import CollectionConfig, MediaItem, MediaSource
from src.common.errors import SubmitError
from src.common.logging import logger
from src.client.model import SubmitResult
from src.client.rest_client import RestMediaClient
from src.transfer.codec import encode_request

class EditSession:
    """Single writer editing session over one stored collection.

    Holds the current Collection value and swaps it for the value returned by each operation.
    Operations that raise leave the current value in place, so the caller can re-present it and
    retry.
    """

    def __init__(
            self,
            client: RestMediaClient,
            collection_key: str,
            config: CollectionConfig | None = None,
            max_workers: int | None = None
    ):
        self.client = client
        self.collection_key = collection_key
        self.max_workers = max_workers
        self._collection = Collection.empty(config)
        self._hydrated = False

    @property
    def collection(self) -> Collection:
        return self._collection

    @property
    def items(self) -> list[MediaItem]:
        return list(self._collection)

    def hydrate(self) -> Collection:
        """Load the stored items from the server. Must be called before any mutation."""
        items = self.client.list_items(self.collection_key)
        self._collection = self._collection.hydrate(items)
        self._hydrated = True
        logger.debug(f"Hydrated {self.collection_key} with {len(items)} items")
        return self._collection

    def add(self, data: bytes | MediaSource, content_type: str) -> str:
        self._check_hydrated()
        self._collection, identity = self._collection.add(data, content_type)
        return identity

    def add_many(self, batch: list[tuple[bytes | MediaSource, str]]) -> list[str]:
        self._check_hydrated()
        self._collection, identities = self._collection.add_many(batch)
        return identities

    def add_file(self, path: str, content_type: str | None = None) -> str:
        self._check_hydrated()
        self._collection, identity = self._collection.add_file(path, content_type)
        return identity

    def add_files(self, paths: list[str]) -> list[str]:
        self._check_hydrated()
        self._collection, identities = self._collection.add_files(paths)
        return identities

    def remove(self, position: int) -> None:
        self._check_hydrated()
        self._collection = self._collection.remove(position)

    def reorder(self, from_position: int, to_position: int) -> None:
        self._check_hydrated()
        self._collection = self._collection.reorder(from_position, to_position)

    def submit(self, metadata: dict[str, Any] | None = None) -> SubmitResult:
        """
        Build the delta for the current state and send it.

        Neither the collection nor the removal set is touched, whether the submit succeeds or
        fails. Call adopt() with the result to continue editing from the committed state.
        """
        delta = self._collection.build_delta(max_workers=self.max_workers)
        body = encode_request(delta, metadata)

        try:
            result = self.client.submit(self.collection_key, body)
        except SubmitError as e:
            logger.error(f"Submit of {self.collection_key} failed: {e}")
            raise

        logger.info(
            "submit committed",
            extra={"collection": self.collection_key, "num_items": len(result.items)}
        )
        return result

    def adopt(self, result: SubmitResult) -> Collection:
        """Continue from the state the server committed."""
        self._collection = Collection.empty(self._collection.config).hydrate(result.items)
        self._hydrated = True
        return self._collection

    def _check_hydrated(self) -> None:
        if not self._hydrated:
            raise RuntimeError("Session must be hydrated before it is edited")
