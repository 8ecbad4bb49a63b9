from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.orm import Session

from master_lookup.csv_import import ImportedRecord
from master_lookup.models import MasterRecord

# 7 bound parameters per row; 100 rows stays under the 999-parameter limit of older SQLite builds.
UPSERT_CHUNK_SIZE = 100


def to_imported(row: MasterRecord) -> ImportedRecord:
    return ImportedRecord(
        code=row.code,
        article=row.article or "",
        description=row.description or "",
        price=row.price or "",
        department=row.department or "",
    )


class MasterRecordRepo:
    def __init__(self, session: Session):
        self.session = session

    def upsert_many(self, records: list[ImportedRecord]) -> int:
        if not records:
            return 0

        # master.csv can repeat a code; the last occurrence wins.
        dedup: dict[str, ImportedRecord] = {}
        for r in records:
            dedup[r.code] = r
        unique = list(dedup.values())

        now = datetime.utcnow()
        bind = self.session.get_bind()
        if bind is not None and getattr(bind.dialect, "name", "") == "sqlite":
            for start in range(0, len(unique), UPSERT_CHUNK_SIZE):
                rows = [
                    {
                        "code": r.code,
                        "article": r.article,
                        "description": r.description,
                        "price": r.price,
                        "department": r.department,
                        "article_lower": r.article_lower,
                        "updated_at": now,
                    }
                    for r in unique[start : start + UPSERT_CHUNK_SIZE]
                ]
                stmt = insert(MasterRecord).values(rows)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[MasterRecord.code],
                    set_={
                        "article": stmt.excluded.article,
                        "description": stmt.excluded.description,
                        "price": stmt.excluded.price,
                        "department": stmt.excluded.department,
                        "article_lower": stmt.excluded.article_lower,
                        "updated_at": stmt.excluded.updated_at,
                    },
                )
                self.session.execute(stmt)
            return len(records)

        # Generic fallback (non-sqlite)
        codes = [r.code for r in unique]
        existing = {
            row.code: row
            for row in self.session.execute(select(MasterRecord).where(MasterRecord.code.in_(codes))).scalars().all()
        }
        for r in unique:
            row = existing.get(r.code)
            if row is None:
                row = MasterRecord(code=r.code)
                self.session.add(row)
            row.article = r.article
            row.description = r.description
            row.price = r.price
            row.department = r.department
            row.article_lower = r.article_lower
            row.updated_at = now
        return len(records)

    def get_by_code(self, code: str) -> MasterRecord | None:
        return self.session.get(MasterRecord, code)

    def search_article(self, term: str) -> list[MasterRecord]:
        """Records whose lowercased article contains ``term`` (literal substring)."""
        needle = (term or "").lower()
        stmt = (
            select(MasterRecord)
            .where(MasterRecord.article_lower.contains(needle, autoescape=True))
            .order_by(MasterRecord.article_lower.asc(), MasterRecord.code.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def count(self) -> int:
        return int(self.session.execute(select(func.count(MasterRecord.code))).scalar_one())
