from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from master_lookup.csv_import import ImportedRecord
from master_lookup.errors import EmptyQueryError, LookupBusyError, StoreOpenError
from master_lookup.store import RecordStore

logger = logging.getLogger(__name__)

MATCHED_BY_CODE = "code"
MATCHED_BY_ARTICLE = "article"

# Store failures that downgrade one lookup phase to "no result".
_PHASE_ERRORS = (SQLAlchemyError, StoreOpenError)


@dataclass(frozen=True)
class LookupResult:
    query: str
    record: ImportedRecord | None = None
    matched_by: str | None = None

    @property
    def found(self) -> bool:
        return self.record is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "found": self.found,
            "matched_by": self.matched_by,
            "record": self.record.to_dict() if self.record is not None else None,
        }


class LookupEngine:
    """Exact code lookup with case variants, then article substring fallback.

    Only one lookup runs at a time; a call made while another is running is
    rejected with :class:`LookupBusyError` rather than queued.
    """

    def __init__(self, store: RecordStore, lock: threading.Lock | None = None):
        self.store = store
        self._lock = lock or threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @staticmethod
    def code_variants(value: str) -> list[str]:
        return [value, value.upper(), value.lower()]

    def lookup(self, raw_input: str) -> LookupResult:
        if not self._lock.acquire(blocking=False):
            raise LookupBusyError("Another operation is running")
        try:
            q = (raw_input or "").strip()
            if not q:
                raise EmptyQueryError("A code must be entered")
            return self._resolve(q)
        finally:
            self._lock.release()

    def _resolve(self, q: str) -> LookupResult:
        for variant in self.code_variants(q):
            try:
                found = self.store.get_by_key(variant)
            except _PHASE_ERRORS as e:
                logger.warning("Code lookup failed for %r: %s", variant, e)
                found = None
            if found is not None:
                return LookupResult(query=q, record=found, matched_by=MATCHED_BY_CODE)

        try:
            matches = self.store.scan_by_article_substring(q)
        except _PHASE_ERRORS as e:
            logger.warning("Article search failed for %r: %s", q, e)
            matches = []
        if matches:
            if len(matches) > 1:
                logger.debug("Article search for %r matched %s records; using the first", q, len(matches))
            return LookupResult(query=q, record=matches[0], matched_by=MATCHED_BY_ARTICLE)

        return LookupResult(query=q)
