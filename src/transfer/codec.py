import base64
import binascii
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Any

from dacite import Config, DaciteError, from_dict

from src.collection.model import PendingItem, PersistedItem
from src.common.errors import DecodeError, MalformedPayload, UnreadableSource
from src.common.logging import logger
from src.common.logging.timing import timeit
from src.transfer.model import (
    DeltaEntry, InlineEntry, ReferenceEntry, SubmitRequest, TransferDelta, WireBlob, WireRemoval, WireRequest
)

if TYPE_CHECKING:
    from src.collection.collection import Collection

ENTRIES_FIELD = "imagesBlob"
REMOVALS_FIELD = "removeImages"

def encode_bytes(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')

def decode_bytes(text: str) -> bytes:
    """Strict base-64 decode. Anything outside the base-64 alphabet is an error rather than being skipped."""
    if not isinstance(text, str):
        raise DecodeError("Encoded data must be a string", type=type(text).__name__)
    try:
        return base64.b64decode(text.encode('ascii'), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError("Invalid base-64 data", reason=str(e)) from e

def build_delta(collection: 'Collection', max_workers: int | None = None) -> TransferDelta:
    """Snapshot a collection into a TransferDelta.

    Pending sources are read concurrently, every read is joined before the delta is returned. If
    any source can't be read the whole build fails with UnreadableSource and no delta is produced.
    """
    items = list(collection.items)
    pending = {idx: item for idx, item in enumerate(items) if isinstance(item, PendingItem)}

    with timeit("reading pending media", num_pending=len(pending)):
        payloads = _read_sources(pending, max_workers)

    entries: list[DeltaEntry] = []
    for idx, item in enumerate(items):
        order = idx + 1
        if isinstance(item, PersistedItem):
            entries.append(ReferenceEntry(order=order, ref_id=item.identity, url=item.url))
        elif isinstance(item, PendingItem):
            entries.append(InlineEntry(order=order, data=payloads[idx], content_type=item.content_type))
        else:
            raise TypeError(f"Unknown media item type: {type(item).__name__}")

    removals = [item.identity for item in collection.removed]

    return TransferDelta(entries=entries, removals=removals)

def _read_sources(pending: dict[int, PendingItem], max_workers: int | None) -> dict[int, bytes]:
    if not pending:
        return {}

    results: dict[int, bytes] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(item.source.read): idx for idx, item in pending.items()}
        try:
            for future in as_completed(futures):
                idx = futures[future]
                try:
                    data = future.result()
                except UnreadableSource:
                    raise
                except Exception as e:
                    raise UnreadableSource(
                        "Cannot read media source",
                        identity=pending[idx].identity,
                        reason=str(e)
                    ) from e
                if not isinstance(data, (bytes, bytearray, memoryview)):
                    raise UnreadableSource(
                        "Media source did not return bytes",
                        identity=pending[idx].identity,
                        type=type(data).__name__
                    )
                results[idx] = bytes(data)
        except UnreadableSource:
            for future in futures:
                future.cancel()
            raise

    return results

def encode_request(delta: TransferDelta, metadata: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build the JSON body of a submit request."""
    body: dict[str, Any] = dict(metadata or {})

    blobs = []
    for entry in delta.entries:
        if isinstance(entry, InlineEntry):
            blobs.append({
                "order": entry.order,
                "data": encode_bytes(entry.data),
                "fileType": entry.content_type,
            })
        elif isinstance(entry, ReferenceEntry):
            blobs.append({
                "order": entry.order,
                "id": entry.ref_id,
                "imageUrl": entry.url,
                "data": None,
            })
        else:
            raise TypeError(f"Unknown delta entry type: {type(entry).__name__}")

    body[ENTRIES_FIELD] = blobs
    body[REMOVALS_FIELD] = [{"id": ref_id} for ref_id in delta.removals]
    return body

def decode_request(body: Any, required_metadata: list[str] | None = None) -> SubmitRequest:
    """Parse a submit request body into tagged delta entries.

    Inline data is decoded here, so a DecodeError surfaces before any storage work starts.
    """
    if not isinstance(body, dict):
        raise MalformedPayload("Request body must be a JSON object")

    missing = [f for f in required_metadata or [] if not body.get(f)]
    if body.get(ENTRIES_FIELD) is None:
        missing.insert(0, ENTRIES_FIELD)
    if missing:
        raise MalformedPayload("Missing required fields", missing=missing)

    try:
        wire = from_dict(WireRequest, body, config=Config(strict=False))
    except DaciteError as e:
        raise MalformedPayload(f"Invalid request body: {e}") from e

    entries = [_decode_entry(blob, idx) for idx, blob in enumerate(wire.imagesBlob)]
    removals = [_decode_removal(r, idx) for idx, r in enumerate(wire.removeImages or [])]

    metadata = {k: v for k, v in body.items() if k not in (ENTRIES_FIELD, REMOVALS_FIELD)}

    logger.debug(
        "decoded submit request",
        extra={"entries": len(entries), "removals": len(removals)}
    )

    return SubmitRequest(delta=TransferDelta(entries=entries, removals=removals), metadata=metadata)

def _decode_entry(blob: WireBlob, idx: int) -> DeltaEntry:
    # bool is an int subclass
    if isinstance(blob.order, bool) or blob.order < 1:
        raise MalformedPayload("Entry order must be an integer >= 1", index=idx, order=blob.order)

    if blob.data is not None:
        if not blob.fileType:
            raise MalformedPayload("Inline entry is missing fileType", index=idx, order=blob.order)
        try:
            data = decode_bytes(blob.data)
        except DecodeError as e:
            raise DecodeError(e.message, index=idx, order=blob.order, **e.context) from e
        return InlineEntry(order=blob.order, data=data, content_type=blob.fileType)

    if not blob.id:
        raise MalformedPayload("Reference entry is missing id", index=idx, order=blob.order)
    return ReferenceEntry(order=blob.order, ref_id=blob.id, url=blob.imageUrl)

def _decode_removal(removal: WireRemoval, idx: int) -> str:
    if not removal.id:
        raise MalformedPayload("Removal is missing id", index=idx)
    return removal.id
