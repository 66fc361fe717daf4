from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
import threading
import uuid
from typing import Any

from src.common.errors import DuplicateOrder, MalformedPayload, UnknownReference
from src.common.logging import logger
from src.common.logging.timing import timeit
from src.mediastore.abstract import Mediastore
from src.mediastore.model import KeptItem, Manifest, NewItem, PlannedItem, StoredItem
from src.transfer.codec import decode_request
from src.transfer.model import InlineEntry, ReferenceEntry, SubmitRequest, TransferDelta

@dataclass
class ReconcilerConfig:
    # top level fields a submit must carry, e.g. ["productName", "des"]
    required_metadata: list[str] = field(default_factory=list)
    max_items: int | None = None

class ReconcileState(Enum):
    RECEIVED = "received"
    VALIDATING = "validating"
    APPLYING = "applying"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"

@dataclass(frozen=True)
class ReconciledItem:
    id: str
    order: int
    url: str
    path: str
    content_type: str

@dataclass
class ReconcileResult:
    collection: str
    state: ReconcileState
    items: list[ReconciledItem]

    @property
    def file_paths(self) -> list[str]:
        return [item.path for item in self.items]

class CollectionLocks:
    """One lock per collection key. Submits to the same collection apply one at a time, last applied wins."""

    def __init__(self):
        self._locks: dict[str, threading.Lock] = {}
        self._locks_mu = threading.Lock()

    def get(self, collection: str) -> threading.Lock:
        with self._locks_mu:
            return self._locks.setdefault(collection, threading.Lock())

class Reconciler:
    """
    Applies submitted deltas to a Mediastore.

    After a successful apply the stored collection holds exactly the submitted entries, in the
    submitted order. Any failure leaves the store as it was before the call.
    """

    def __init__(self, store: Mediastore, cfg: ReconcilerConfig | None = None):
        self.store = store
        self.cfg = cfg or ReconcilerConfig()
        self.locks = CollectionLocks()

    def submit(self, collection: str, body: Any) -> ReconcileResult:
        """Decode a raw request body and apply it."""
        self._transition(collection, ReconcileState.RECEIVED)
        self._transition(collection, ReconcileState.VALIDATING)
        try:
            request = decode_request(body, required_metadata=self.cfg.required_metadata)
        except Exception:
            self._transition(collection, ReconcileState.ROLLED_BACK)
            raise
        return self._apply(collection, request)

    def apply(self, collection: str, request: SubmitRequest) -> ReconcileResult:
        self._transition(collection, ReconcileState.RECEIVED)
        self._transition(collection, ReconcileState.VALIDATING)
        return self._apply(collection, request)

    def list_items(self, collection: str) -> list[ReconciledItem]:
        # a submit swaps the collection directory out and back in
        with self.locks.get(collection):
            manifest = self.store.get_manifest(collection)
        return [self._reconciled(collection, item) for item in manifest.items]

    def _apply(self, collection: str, request: SubmitRequest) -> ReconcileResult:
        delta = request.delta
        try:
            self._validate_delta(delta)
            with self.locks.get(collection):
                manifest = self.store.get_manifest(collection)
                self._validate_references(manifest, delta)
                plan = self._plan(collection, manifest, delta)

                self._transition(collection, ReconcileState.APPLYING)
                with timeit("applying delta", collection=collection, entries=len(plan)):
                    new_manifest = self.store.replace_collection(collection, plan, request.metadata)
        except Exception:
            self._transition(collection, ReconcileState.ROLLED_BACK)
            raise

        self._transition(collection, ReconcileState.COMMITTED)

        return ReconcileResult(
            collection=collection,
            state=ReconcileState.COMMITTED,
            items=[self._reconciled(collection, item) for item in new_manifest.items]
        )

    def _validate_delta(self, delta: TransferDelta) -> None:
        """Checks that only need the delta itself."""
        if self.cfg.max_items is not None and len(delta.entries) > self.cfg.max_items:
            raise MalformedPayload(
                "Too many entries",
                entries=len(delta.entries),
                max_items=self.cfg.max_items
            )

        orders = Counter(entry.order for entry in delta.entries)
        duplicates = sorted(order for order, count in orders.items() if count > 1)
        if duplicates:
            raise DuplicateOrder("Multiple entries share the same order", orders=duplicates)

        ref_ids = Counter(entry.ref_id for entry in delta.references())
        repeated = sorted(ref_id for ref_id, count in ref_ids.items() if count > 1)
        if repeated:
            raise MalformedPayload("Item referenced more than once", ids=repeated)

        conflicting = sorted(set(ref_ids) & set(delta.removals))
        if conflicting:
            raise MalformedPayload("Item both kept and removed", ids=conflicting)

    def _validate_references(self, manifest: Manifest, delta: TransferDelta) -> None:
        stored = manifest.by_id()
        unknown = [entry.ref_id for entry in delta.references() if entry.ref_id not in stored]
        if unknown:
            raise UnknownReference("Referenced items are not stored", ids=unknown)

    def _plan(self, collection: str, manifest: Manifest, delta: TransferDelta) -> list[PlannedItem]:
        stored = manifest.by_id()

        plan: list[PlannedItem] = []
        for entry in delta.entries:
            if isinstance(entry, ReferenceEntry):
                plan.append(KeptItem(item=stored[entry.ref_id], order=entry.order))
            elif isinstance(entry, InlineEntry):
                plan.append(NewItem(
                    id=uuid.uuid4().hex,
                    order=entry.order,
                    data=entry.data,
                    content_type=entry.content_type
                ))
            else:
                raise TypeError(f"Unknown delta entry type: {type(entry).__name__}")

        removals = set(delta.removals)
        ignored = sorted(removals - set(stored))
        if ignored:
            # already gone, e.g. a retried submit
            logger.debug(f"Ignoring removal of unknown items in {collection}: {ignored}")

        kept = {entry.ref_id for entry in delta.references()}
        dropped = sorted(set(stored) - kept - removals)
        if dropped:
            logger.warning(f"Dropping stored items missing from submit for {collection}: {dropped}")

        return plan

    def _reconciled(self, collection: str, item: StoredItem) -> ReconciledItem:
        return ReconciledItem(
            id=item.id,
            order=item.order,
            url=self.store.item_url(collection, item),
            path=self.store.item_path(collection, item),
            content_type=item.content_type
        )

    def _transition(self, collection: str, state: ReconcileState) -> None:
        logger.bind(collection=collection).debug(f"submit {state.value}")
