from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Any

from master_lookup.acquisition import DatasetFetcher, ProgressFn
from master_lookup.csv_import import MasterCsvImporter
from master_lookup.db import create_engine_from_url
from master_lookup.errors import DatasetUnavailableError, LookupBusyError, StoreWriteError
from master_lookup.lookup import LookupEngine, LookupResult
from master_lookup.settings import Settings
from master_lookup.store import RecordStore

logger = logging.getLogger(__name__)

EMPTY_DATASET_MESSAGE = "master.csv is empty or its header was not recognized"


@dataclass(frozen=True)
class ImportResult:
    ok: bool
    count: int = 0
    source: str | None = None
    empty: bool = False
    message: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class MasterService:
    """Startup import, lookups and reset over one store/fetcher pair.

    Import, lookup and reset share one lock: while any of them runs the
    others are rejected with :class:`LookupBusyError`.
    """

    def __init__(
        self,
        store: RecordStore,
        fetcher: DatasetFetcher,
        *,
        importer: MasterCsvImporter | None = None,
    ):
        self.store = store
        self.fetcher = fetcher
        self.importer = importer or MasterCsvImporter()
        self._lock = threading.Lock()
        self.engine = LookupEngine(store, lock=self._lock)

    @classmethod
    def from_settings(cls, settings: Settings, **fetcher_kwargs) -> "MasterService":
        engine = create_engine_from_url(settings.DATABASE_URL)
        return cls(RecordStore(engine), DatasetFetcher.from_settings(settings, **fetcher_kwargs))

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _acquire(self, action: str) -> None:
        if not self._lock.acquire(blocking=False):
            raise LookupBusyError(f"Cannot {action} while another operation is running")

    def startup(self, on_progress: ProgressFn | None = None) -> ImportResult:
        """Open the store, then fetch, parse and import master.csv.

        A missing dataset or a rejected import leaves previously stored
        records untouched; only a store that cannot be opened raises.
        """
        self._acquire("import")
        try:
            return self._import(on_progress)
        finally:
            self._lock.release()

    def _import(self, on_progress: ProgressFn | None) -> ImportResult:
        notify = on_progress or (lambda _msg: None)
        self.store.open()

        try:
            snapshot = self.fetcher.fetch_dataset(on_progress=notify)
        except DatasetUnavailableError as e:
            logger.error("master.csv unavailable: %s", e)
            return ImportResult(ok=False, error=f"Could not load master.csv: {e}")

        notify(f"Processing master.csv ({snapshot.provenance})...")
        records = self.importer.read_records(snapshot.text)
        if not records:
            logger.info("No records to import from %s", snapshot.provenance)
            return ImportResult(
                ok=True,
                source=snapshot.provenance,
                empty=True,
                message=EMPTY_DATASET_MESSAGE,
            )

        notify(f"Importing {len(records)} rows...")
        try:
            count = self.store.bulk_upsert(records)
        except StoreWriteError as e:
            logger.error("Import of master.csv failed: %s", e)
            return ImportResult(ok=False, source=snapshot.provenance, error=f"Could not import master.csv: {e}")

        logger.info("Imported %s records from %s", count, snapshot.provenance)
        return ImportResult(
            ok=True,
            count=count,
            source=snapshot.provenance,
            message=f"Import finished: {count} items stored",
        )

    def lookup(self, raw_input: str) -> LookupResult:
        return self.engine.lookup(raw_input)

    def reset(self) -> dict[str, Any]:
        """Drop every stored record and the cached master.csv. Idempotent."""
        self._acquire("reset")
        try:
            return self._purge()
        finally:
            self._lock.release()

    def _purge(self) -> dict[str, Any]:
        self.store.purge()
        cache_removed = self.fetcher.purge_cache()
        logger.info("Master data reset (cache removed: %s)", cache_removed)
        return {"ok": True, "cache_removed": cache_removed}

    def reload(self, on_progress: ProgressFn | None = None) -> ImportResult:
        """Reset, then import a fresh copy, without releasing the lock in between."""
        self._acquire("reload")
        try:
            self._purge()
            return self._import(on_progress)
        finally:
            self._lock.release()

    def record_count(self) -> int:
        if not self.store.is_open:
            return 0
        return self.store.count()
