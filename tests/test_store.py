import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from master_lookup import repos
from master_lookup.csv_import import ImportedRecord
from master_lookup.db import create_engine_from_url
from master_lookup.models import MasterRecord
from master_lookup.errors import StoreOpenError, StoreWriteError
from master_lookup.store import RecordStore


def test_open_is_idempotent_and_creates_article_index(engine):
    store = RecordStore(engine)
    assert store.open() is store
    store.open()
    indexes = {ix["name"]: ix for ix in inspect(engine).get_indexes("master_records")}
    assert "ix_master_records_article_lower" in indexes
    assert not indexes["ix_master_records_article_lower"]["unique"]


def test_last_write_wins_by_code(store):
    n = store.bulk_upsert([ImportedRecord(code="X1", article="Foo"), ImportedRecord(code="X1", article="Bar")])
    assert n == 2
    assert store.get_by_key("X1") == ImportedRecord(code="X1", article="Bar")
    assert store.count() == 1


def test_later_import_overwrites_and_recomputes_article_lower(store):
    store.bulk_upsert([ImportedRecord(code="A", article="Old Name", price="1")])
    store.bulk_upsert([ImportedRecord(code="A", article="New NAME", price="2")])
    assert store.get_by_key("A").price == "2"
    assert store.scan_by_article_substring("old") == []
    assert [r.code for r in store.scan_by_article_substring("new name")] == ["A"]


def test_get_by_key_is_case_sensitive(store):
    store.bulk_upsert([ImportedRecord(code="ab12", article="Blue Widget")])
    assert store.get_by_key("ab12") is not None
    assert store.get_by_key("AB12") is None


def test_substring_scan_matches_anywhere_in_index_order(store):
    store.bulk_upsert(
        [
            ImportedRecord(code="3", article="Red Widget"),
            ImportedRecord(code="1", article="Blue Widget"),
            ImportedRecord(code="2", article="Gadget"),
        ]
    )
    assert [r.code for r in store.scan_by_article_substring("WIDGET")] == ["1", "3"]
    assert [r.code for r in store.scan_by_article_substring("gad")] == ["2"]
    assert [r.code for r in store.scan_by_article_substring("dge")] == ["1", "2", "3"]
    assert store.scan_by_article_substring("nothing") == []


def test_substring_scan_treats_wildcards_literally(store):
    store.bulk_upsert([ImportedRecord(code="p", article="100% cotton"), ImportedRecord(code="q", article="1000 cotton")])
    assert [r.code for r in store.scan_by_article_substring("100%")] == ["p"]
    assert [r.code for r in store.scan_by_article_substring("_")] == []


def test_large_batches_are_chunked(store):
    records = [ImportedRecord(code=f"C{i:05d}", article=f"Item {i}") for i in range(1234)]
    assert store.bulk_upsert(records) == 1234
    assert store.count() == 1234


def test_failed_write_leaves_previous_data(store, monkeypatch):
    store.bulk_upsert([ImportedRecord(code="KEEP", article="Stays")])

    real = repos.MasterRecordRepo.upsert_many

    def boom(self, records):
        real(self, records)
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(repos.MasterRecordRepo, "upsert_many", boom)
    with pytest.raises(StoreWriteError):
        store.bulk_upsert([ImportedRecord(code="NEW", article="Never committed")])

    assert store.get_by_key("NEW") is None
    assert store.get_by_key("KEEP").article == "Stays"


def test_open_fails_for_unreachable_database(tmp_path):
    missing_dir = tmp_path / "does" / "not" / "exist"
    engine = create_engine_from_url("sqlite:///" + (missing_dir / "x.sqlite").as_posix())
    with pytest.raises(StoreOpenError):
        RecordStore(engine).open()


def test_reads_require_open_store(engine):
    with pytest.raises(StoreOpenError):
        RecordStore(engine).get_by_key("X")


def test_purge_is_idempotent(store):
    store.bulk_upsert([ImportedRecord(code="X", article="Y")])
    store.purge()
    assert not store.is_open
    store.purge()
    assert store.open().count() == 0


def test_purge_without_database_file_does_not_create_it(tmp_path):
    db_file = tmp_path / "never" / "x.sqlite"
    store = RecordStore(create_engine_from_url("sqlite:///" + db_file.as_posix()))
    store.purge()
    store.purge()
    assert not db_file.parent.exists()


def test_upsert_chunk_fits_legacy_parameter_limit():
    per_row = len(MasterRecord.__table__.columns)
    assert repos.UPSERT_CHUNK_SIZE * per_row <= 999
