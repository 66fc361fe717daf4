from dataclasses import asdict
import json
import mimetypes
import os
import re
import shutil
import time
import uuid
from typing import Any

from src.common.errors import BadRequestError
from src.common.logging import logger
from src.mediastore.abstract import Mediastore
from src.mediastore.model import KeptItem, Manifest, NewItem, PlannedItem, StoredItem

MANIFEST_NAME = "collection.json"
STAGING_DIR = ".staging"
TRASH_DIR = ".trash"

_COLLECTION_KEY = re.compile(r"^[A-Za-z0-9_-]+$")

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
}

class FilesystemMediastore(Mediastore):
    """
    Stores each collection as a directory of `image-<order>.<ext>` files plus a manifest.

    Layout:
        <base_dir>/<collection>/collection.json
        <base_dir>/<collection>/image-1.png
        <base_dir>/<collection>/image-2.jpg
        ...

    Writes go to a staging directory which is swapped in with renames once complete, so a
    collection directory always holds either the previous or the new state.
    """

    def __init__(self, base_dir: str, public_url: str = ""):
        self.base_path = base_dir
        self.public_url = public_url.rstrip('/')
        os.makedirs(self.base_path, exist_ok=True)

    def get_manifest(self, collection: str) -> Manifest:
        metadata_path = self._get_manifest_path(collection)

        if not os.path.exists(metadata_path):
            return Manifest()

        with open(metadata_path, 'r') as f:
            data = json.load(f)

        items = [StoredItem(**item) for item in data.get("items", [])]
        items.sort(key=lambda item: item.order)
        return Manifest(
            items=items,
            metadata=data.get("metadata", {}),
            updated_at=data.get("updated_at")
        )

    def replace_collection(self,
        collection: str,
        plan: list[PlannedItem],
        metadata: dict[str, Any]
    ) -> Manifest:
        collection_dir = self._get_collection_dir(collection)
        staging_dir = os.path.join(self.base_path, STAGING_DIR, f"{collection}-{uuid.uuid4().hex[:8]}")
        os.makedirs(staging_dir)

        try:
            items = []
            for planned in sorted(plan, key=lambda p: p.order):
                items.append(self._stage_item(collection_dir, staging_dir, planned))

            manifest = Manifest(items=items, metadata=metadata, updated_at=time.time())
            with open(os.path.join(staging_dir, MANIFEST_NAME), 'w') as f:
                json.dump(asdict(manifest), f, indent=2)

            self._swap(collection, staging_dir)
        except Exception:
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise

        return manifest

    def item_url(self, collection: str, item: StoredItem) -> str:
        if self.public_url:
            return f"{self.public_url}/{collection}/{item.filename}"
        return self.item_path(collection, item)

    def item_path(self, collection: str, item: StoredItem) -> str:
        """Path of the item relative to the parent of the base directory, e.g. uploads/<collection>/image-1.png"""
        return "/".join([os.path.basename(os.path.normpath(self.base_path)), collection, item.filename])

    def _stage_item(self, collection_dir: str, staging_dir: str, planned: PlannedItem) -> StoredItem:
        if isinstance(planned, KeptItem):
            item = StoredItem(
                id=planned.item.id,
                order=planned.order,
                filename=self._filename(planned.order, planned.item.content_type),
                content_type=planned.item.content_type
            )
            shutil.copy2(
                os.path.join(collection_dir, planned.item.filename),
                os.path.join(staging_dir, item.filename)
            )
            return item

        if isinstance(planned, NewItem):
            item = StoredItem(
                id=planned.id,
                order=planned.order,
                filename=self._filename(planned.order, planned.content_type),
                content_type=planned.content_type
            )
            with open(os.path.join(staging_dir, item.filename), 'wb') as f:
                f.write(planned.data)
            return item

        raise TypeError(f"Unknown planned item: {type(planned).__name__}")

    def _swap(self, collection: str, staging_dir: str) -> None:
        collection_dir = self._get_collection_dir(collection)

        if not os.path.exists(collection_dir):
            os.rename(staging_dir, collection_dir)
            return

        trash_dir = os.path.join(self.base_path, TRASH_DIR, f"{collection}-{uuid.uuid4().hex[:8]}")
        os.makedirs(os.path.dirname(trash_dir), exist_ok=True)
        os.rename(collection_dir, trash_dir)
        try:
            os.rename(staging_dir, collection_dir)
        except Exception:
            # put the previous state back
            os.rename(trash_dir, collection_dir)
            raise

        shutil.rmtree(trash_dir, ignore_errors=True)
        logger.debug(f"Swapped in new state for collection {collection}")

    def _filename(self, order: int, content_type: str) -> str:
        ext = _EXTENSIONS.get(content_type) or mimetypes.guess_extension(content_type) or ".bin"
        return f"image-{order}{ext}"

    def _get_collection_dir(self, collection: str) -> str:
        """Get the directory path for a specific collection"""
        if not _COLLECTION_KEY.match(collection):
            raise BadRequestError(f"Invalid collection key: {collection}")
        return os.path.join(self.base_path, collection)

    def _get_manifest_path(self, collection: str) -> str:
        """Get the path to the collection manifest"""
        return os.path.join(self._get_collection_dir(collection), MANIFEST_NAME)
