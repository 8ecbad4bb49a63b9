from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from master_lookup.csv_parser import parse_csv


@dataclass(frozen=True)
class ImportedRecord:
    """One master.csv row, normalized for UPSERT into the local database."""

    code: str
    article: str = ""
    description: str = ""
    price: str = ""
    department: str = ""

    @property
    def article_lower(self) -> str:
        return self.article.lower()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class MasterCsvImporter:
    # Header keywords, matched as substrings of the trimmed, lowercased header cell.
    # Supports both the English export and the Indonesian one
    # (Kode, Artikel, Deskripsi, Harga, Bagian).
    HEADER_KEYWORDS: dict[str, tuple[str, ...]] = {
        "code": ("code", "kode"),
        "article": ("article", "artikel"),
        "description": ("desc", "description", "deskripsi"),
        "price": ("price", "harga"),
        "department": ("dept", "department", "bagian"),
    }

    @staticmethod
    def _norm(x: Any) -> str:
        return str(x or "").strip().lower()

    def header_map(self, header: list[str]) -> dict[str, int]:
        """Column index per logical field. When several columns match, the last one wins."""
        mapping: dict[str, int] = {}
        for idx, cell in enumerate(header or []):
            h = self._norm(cell)
            for field, keywords in self.HEADER_KEYWORDS.items():
                if any(k in h for k in keywords):
                    mapping[field] = idx
        return mapping

    def read_records(self, text: str) -> list[ImportedRecord]:
        rows = parse_csv(text)
        if not rows:
            return []

        mapping = self.header_map(rows[0])

        def at(row: list[str], field: str) -> str:
            idx = mapping.get(field)
            if idx is None or idx >= len(row):
                return ""
            return (row[idx] or "").strip()

        out: list[ImportedRecord] = []
        for row in rows[1:]:
            if not row:
                continue
            code = at(row, "code")
            if not code:
                continue
            out.append(
                ImportedRecord(
                    code=code,
                    article=at(row, "article"),
                    description=at(row, "description"),
                    price=at(row, "price"),
                    department=at(row, "department"),
                )
            )
        return out


def to_records(text: str) -> list[ImportedRecord]:
    return MasterCsvImporter().read_records(text)
