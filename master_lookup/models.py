from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class MasterRecord(Base):
    __tablename__ = "master_records"

    code: Mapped[str] = mapped_column(String(255), primary_key=True)

    article: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Kept verbatim from the CSV (may carry currency symbols or separators).
    price: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    department: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # Derived from article on every upsert; only used by the substring search.
    article_lower: Mapped[str] = mapped_column(Text, nullable=False, default="")

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_master_records_article_lower", "article_lower", unique=False),
    )
