from typing import Any, Protocol

from src.mediastore.model import Manifest, PlannedItem, StoredItem

class Mediastore(Protocol):
    def get_manifest(self, collection: str) -> Manifest:
        """Current state of a collection. Unknown collections are empty."""
        ...

    def replace_collection(self, 
        collection: str, 
        plan: list[PlannedItem], 
        metadata: dict[str, Any]
    ) -> Manifest:
        """
        Make the collection hold exactly the planned items. Either every change is committed or
        none is.
        """
        ...

    def item_url(self, collection: str, item: StoredItem) -> str:
        ...

    def item_path(self, collection: str, item: StoredItem) -> str:
        ...
