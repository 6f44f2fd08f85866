"""
Sync engine for the Game Stats Tracker application.

Keeps the committed game records of one scope in memory, mirrors them to the
local cache, and reconciles them with the remote store. Remote failures never
lose data: the worst outcome is a record tagged ``local-only`` plus an error
returned to the caller.
"""
import logging
import threading
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, TypeVar

from ..errors import InvalidConfiguration, NotFoundError, StoreError, TransientStoreError
from ..models import GameRecord, SyncState, validate_stats
from ..utils import LOCAL_ID_PREFIX, now_iso, now_ms, now_ts
from ..utils.constants import DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_DELAY_SECONDS
from .game_store import GameStore
from .persistence_service import PersistenceService

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Fields that only mean something locally and are never sent to the store
_LOCAL_ONLY_FIELDS = ("id", "syncState")


class SyncStatus(Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"


@dataclass
class SyncResult:
    """
    Outcome of a sync engine operation.

    Attributes:
        record: The record the operation produced or touched, if any
        records: Full record list, for operations that return one
        error: Store error that was absorbed by the local fallback
        warnings: Stat consistency warnings for an edited record
    """
    record: Optional[GameRecord] = None
    records: List[GameRecord] = field(default_factory=list)
    error: Optional[StoreError] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


class SyncEngine:
    """
    Single source of truth for the committed records of one scope.

    All mutations of the record list happen here, under one re-entrant lock,
    so an edit issued while a save is still talking to the store waits for
    that save to settle and sees its final id.

    Writers publish a new immutable tuple of records when they finish. Reads
    (``records``, ``get``, ``pending_count`` and the status attributes) use
    the last published tuple and never take the lock, so they answer at once
    even while a store call is in flight.
    """

    def __init__(
        self,
        store: GameStore,
        cache: PersistenceService,
        scope: str,
        max_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        base_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        time_source: Callable[[], int] = now_ms,
    ):
        if not scope:
            raise InvalidConfiguration("A scope (user PIN) is required")
        if max_attempts < 1:
            raise InvalidConfiguration("max_attempts must be at least 1")

        self.store = store
        self.cache = cache
        self.scope = scope
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep
        self._time_source = time_source
        self._lock = threading.RLock()

        self.online = True
        self.status = SyncStatus.IDLE
        self.last_sync_ts: Optional[float] = None
        self.last_error: Optional[StoreError] = None
        self._records: Tuple[GameRecord, ...] = tuple(self._read_cache())

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------
    def records(self) -> List[GameRecord]:
        """Committed records, newest first."""
        return list(self._records)

    def get(self, record_id: str) -> Optional[GameRecord]:
        """Look a record up by its id or its client id."""
        found = self._find(record_id)
        return found[1] if found else None

    def pending_count(self) -> int:
        return sum(1 for record in self._records if record.is_local_only)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def save(self, record: GameRecord) -> SyncResult:
        """
        Persist a newly committed record.

        Tries the remote store with bounded retry; on failure the record is
        kept in the local cache under a ``local_`` id.

        Raises:
            InvalidConfiguration: If required fields are missing
        """
        missing = record.missing_fields()
        if missing:
            raise InvalidConfiguration(f"Missing required fields: {', '.join(missing)}")

        with self._lock:
            existing = self._find(record.client_id)
            if existing is not None:
                # Same logical game saved twice; keep one copy
                if not existing[1].is_local_only:
                    return SyncResult(record=existing[1])
                return self._push_local(existing[0], existing[1])

            timestamp = now_iso()
            prepared = replace(
                record,
                id=None,
                user_pin=self.scope,
                created_at=record.created_at or timestamp,
                last_modified=timestamp,
                sync_state=SyncState.LOCAL_ONLY,
            )

            self.status = SyncStatus.SYNCING
            try:
                stored = self._remote(lambda: self.store.save(self._payload(prepared)), "save")
            except StoreError as exc:
                local = replace(prepared, id=self._new_local_id())
                self._publish((local,) + self._records)
                self._record_failure("save", exc)
                return SyncResult(record=local, error=exc)

            saved = self._adopt_remote(prepared, stored)
            self._publish((saved,) + self._records)
            self._record_success()
            logger.info("Saved game %s vs %s as %s", saved.date, saved.opponent or "-", saved.id)
            return SyncResult(record=saved)

    def load(self) -> SyncResult:
        """
        Refresh from the remote store.

        The remote list replaces every synced record. Local-only records the
        store does not know about yet are kept so they can still be pushed.
        """
        with self._lock:
            self.status = SyncStatus.SYNCING
            try:
                documents = self._remote(lambda: self.store.load_all(self.scope), "load")
            except StoreError as exc:
                self._record_failure("load", exc)
                return SyncResult(records=list(self._records), error=exc)

            remote = [self._from_document(doc) for doc in documents]
            remote_ids = {record.client_id for record in remote}
            pending = [r for r in self._records if r.is_local_only and r.client_id not in remote_ids]

            self._publish(self._newest_first(pending + remote))
            self._record_success()
            logger.info("Loaded %d games (%d pending upload)", len(remote), len(pending))
            return SyncResult(records=list(self._records))

    def update(self, record_id: str, patch: Mapping[str, Any]) -> SyncResult:
        """
        Edit a record; derived fields are recomputed.

        The local copy always reflects the edit, even if the remote update
        fails. Stat inconsistencies in the edited record do not block the
        edit; they come back as ``warnings``.

        Raises:
            NotFoundError: If no record has this id
            InvalidConfiguration: If an edited value is out of range
        """
        with self._lock:
            index, current = self._require(record_id)
            updated = current.with_updates(patch)
            warnings = validate_stats(updated.stats)
            if warnings:
                logger.warning("Edited game %s has inconsistent stats: %s", record_id, "; ".join(warnings))

            error: Optional[StoreError] = None
            if not current.is_local_only:
                try:
                    self._remote(lambda: self.store.update(current.id, self._payload(updated)), "update")
                except StoreError as exc:
                    error = exc

            records = list(self._records)
            records[index] = updated
            self._publish(records)
            if error is not None:
                self._record_failure("update", error)
            elif not current.is_local_only:
                self._record_success()
            return SyncResult(record=updated, error=error, warnings=warnings)

    def delete(self, record_id: str) -> SyncResult:
        """
        Delete a record locally and, when it was synced, remotely.

        Raises:
            NotFoundError: If no record has this id
        """
        with self._lock:
            index, current = self._require(record_id)

            error: Optional[StoreError] = None
            if not current.is_local_only:
                try:
                    self._remote(lambda: self.store.delete(current.id), "delete")
                except NotFoundError:
                    logger.info("Game %s was already gone from the store", current.id)
                except StoreError as exc:
                    error = exc

            records = list(self._records)
            del records[index]
            self._publish(records)
            if error is not None:
                self._record_failure("delete", error)
            elif not current.is_local_only:
                self._record_success()
            return SyncResult(record=current, error=error)

    def clear_all(self) -> SyncResult:
        """Delete every record of the scope; the local cache is always cleared."""
        with self._lock:
            error: Optional[StoreError] = None
            try:
                self._remote(lambda: self.store.clear_all(self.scope), "clear", retry=False)
            except StoreError as exc:
                error = exc

            self._records = ()
            self.cache.clear(self.scope)
            if error is not None:
                self._record_failure("clear", error)
            else:
                self._record_success()
            return SyncResult(error=error)

    def sync_pending(self) -> SyncResult:
        """
        Push local-only records to the store.

        Records the store already holds (matched by client id) adopt the
        stored id rather than being saved a second time.
        """
        with self._lock:
            pending = [(idx, rec) for idx, rec in enumerate(self._records) if rec.is_local_only]
            if not pending:
                return SyncResult(records=list(self._records))

            self.status = SyncStatus.SYNCING
            try:
                documents = self._remote(lambda: self.store.load_all(self.scope), "sync")
            except StoreError as exc:
                self._record_failure("sync", exc)
                return SyncResult(records=list(self._records), error=exc)

            known = {doc.get("clientId"): doc for doc in documents if doc.get("clientId")}
            records = list(self._records)
            first_error: Optional[StoreError] = None
            for index, record in pending:
                try:
                    records[index] = self._upload(record, known.get(record.client_id))
                except StoreError as exc:
                    first_error = first_error or exc

            self._publish(records)
            if first_error is not None:
                self._record_failure("sync", first_error)
            else:
                self._record_success()
            logger.info("Pushed pending games; %d still local-only", self.pending_count())
            return SyncResult(records=list(self._records), error=first_error)

    def bulk_save(self, records: List[GameRecord]) -> SyncResult:
        """Save several records (e.g. from a backup); reports the first error."""
        with self._lock:
            saved: List[GameRecord] = []
            first_error: Optional[StoreError] = None
            for record in records:
                if record.missing_fields():
                    logger.warning("Skipping game %s with missing fields", record.client_id)
                    continue
                result = self.save(record)
                saved.append(result.record)
                first_error = first_error or result.error
            return SyncResult(records=saved, error=first_error)

    # ------------------------------------------------------------------
    # Network status
    # ------------------------------------------------------------------
    def go_online(self) -> SyncResult:
        """Network came back: push pending records, then refresh from the store."""
        with self._lock:
            self.online = True
            self.store.go_online()
            logger.info("Network online for scope %s", self.scope)
            pushed = self.sync_pending()
            loaded = self.load()
            return SyncResult(records=loaded.records, error=loaded.error or pushed.error)

    def go_offline(self) -> None:
        with self._lock:
            self.online = False
            self.store.go_offline()
            logger.info("Network offline for scope %s", self.scope)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _remote(self, operation: Callable[[], T], description: str, retry: bool = True) -> T:
        """Run a store call with exponential backoff for transient errors."""
        if not self.online:
            raise TransientStoreError(f"Cannot {description} while offline", code="unavailable")

        attempts = self.max_attempts if retry else 1
        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except StoreError as exc:
                if not exc.retryable or attempt == attempts:
                    raise
                delay = self.base_delay * 2 ** (attempt - 1)
                logger.warning(
                    "Store %s failed (attempt %d/%d): %s; retrying in %.1fs",
                    description, attempt, attempts, exc, delay,
                )
                self._sleep(delay)
        raise AssertionError("unreachable")

    def _push_local(self, index: int, record: GameRecord) -> SyncResult:
        self.status = SyncStatus.SYNCING
        try:
            uploaded = self._upload(record, None)
        except StoreError as exc:
            self._record_failure("save", exc)
            return SyncResult(record=record, error=exc)
        records = list(self._records)
        records[index] = uploaded
        self._publish(records)
        self._record_success()
        return SyncResult(record=uploaded)

    def _upload(self, record: GameRecord, known: Optional[Dict[str, Any]]) -> GameRecord:
        if known is None:
            stored = self._remote(lambda: self.store.save(self._payload(record)), "save")
            return self._adopt_remote(record, stored)
        adopted = replace(record, id=str(known["id"]), sync_state=SyncState.SYNCED)
        self._remote(lambda: self.store.update(adopted.id, self._payload(adopted)), "update")
        return adopted

    def _adopt_remote(self, record: GameRecord, stored: Mapping[str, Any]) -> GameRecord:
        return replace(record, id=str(stored["id"]), sync_state=SyncState.SYNCED)

    def _from_document(self, document: Mapping[str, Any]) -> GameRecord:
        return replace(GameRecord.from_json(document), sync_state=SyncState.SYNCED)

    @staticmethod
    def _payload(record: GameRecord) -> Dict[str, Any]:
        data = record.to_json()
        for key in _LOCAL_ONLY_FIELDS:
            data.pop(key, None)
        return data

    def _find(self, record_id: str) -> Optional[Tuple[int, GameRecord]]:
        for index, record in enumerate(self._records):
            if record.id == record_id or record.client_id == record_id:
                return index, record
        return None

    def _require(self, record_id: str) -> Tuple[int, GameRecord]:
        found = self._find(record_id)
        if found is None:
            raise NotFoundError(f"Game {record_id} not found")
        return found

    def _new_local_id(self) -> str:
        base = f"{LOCAL_ID_PREFIX}{int(self._time_source())}"
        candidate, suffix = base, 1
        while self._find(candidate) is not None:
            candidate = f"{base}_{suffix}"
            suffix += 1
        return candidate

    @staticmethod
    def _newest_first(records: List[GameRecord]) -> List[GameRecord]:
        return sorted(records, key=lambda record: record.created_at or "", reverse=True)

    def _read_cache(self) -> List[GameRecord]:
        try:
            return [GameRecord.from_json(doc) for doc in self.cache.load_records(self.scope)]
        except (ValueError, TypeError, AttributeError) as exc:
            logger.error("Local cache for %s is unreadable: %s", self.scope, exc)
            self.cache.quarantine(self.scope)
            return []

    def _publish(self, records: Iterable[GameRecord]) -> None:
        """Swap in a new record tuple and mirror it to the local cache."""
        self._records = tuple(records)
        self.cache.replace_records(self.scope, [record.to_json() for record in self._records])

    def _record_success(self) -> None:
        self.status = SyncStatus.SYNCED
        self.last_sync_ts = now_ts()
        self.last_error = None

    def _record_failure(self, operation: str, error: StoreError) -> None:
        self.status = SyncStatus.ERROR
        self.last_error = error
        logger.error("Store %s failed for scope %s: %s", operation, self.scope, error)
