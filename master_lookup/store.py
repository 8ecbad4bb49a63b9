from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from master_lookup.csv_import import ImportedRecord
from master_lookup.db import drop_db, init_db, make_session_factory, session_scope, sqlite_file_path
from master_lookup.errors import StoreOpenError, StoreWriteError
from master_lookup.repos import MasterRecordRepo, to_imported

logger = logging.getLogger(__name__)


class RecordStore:
    """Durable collection of master records keyed by code.

    Wraps the SQLAlchemy engine so callers get plain ``ImportedRecord`` values
    and the error taxonomy of :mod:`master_lookup.errors` instead of ORM rows
    and driver exceptions. Reads open a short session each; a bulk upsert is
    a single transaction, so a reader never sees a half-imported table.
    """

    def __init__(self, engine: Engine, session_factory: sessionmaker[Session] | None = None):
        self.engine = engine
        self._session_factory = session_factory or make_session_factory(engine)
        self._opened = False

    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self) -> "RecordStore":
        if self._opened:
            return self
        try:
            init_db(self.engine)
        except SQLAlchemyError as e:
            raise StoreOpenError(f"Could not open the local database: {e}") from e
        self._opened = True
        return self

    def _require_open(self) -> None:
        if not self._opened:
            raise StoreOpenError("The local database is not open")

    def bulk_upsert(self, records: Iterable[ImportedRecord]) -> int:
        self._require_open()
        batch = list(records)
        try:
            with session_scope(self._session_factory) as session:
                count = MasterRecordRepo(session).upsert_many(batch)
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Import rejected by the local database: {e}") from e
        logger.info("Upserted %s records", count)
        return count

    def get_by_key(self, code: str) -> ImportedRecord | None:
        self._require_open()
        with session_scope(self._session_factory) as session:
            row = MasterRecordRepo(session).get_by_code(code)
            return to_imported(row) if row is not None else None

    def scan_by_article_substring(self, term: str) -> list[ImportedRecord]:
        self._require_open()
        with session_scope(self._session_factory) as session:
            return [to_imported(r) for r in MasterRecordRepo(session).search_article(term)]

    def count(self) -> int:
        self._require_open()
        with session_scope(self._session_factory) as session:
            return MasterRecordRepo(session).count()

    def purge(self) -> None:
        """Drop the whole table. Safe to call when it does not exist."""
        self._opened = False
        db_file = sqlite_file_path(self.engine)
        if db_file is not None and not db_file.exists():
            # Nothing was ever created; connecting would create (or fail to create) the file.
            return
        try:
            drop_db(self.engine)
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Could not drop the local database: {e}") from e
        logger.info("Local database dropped")
