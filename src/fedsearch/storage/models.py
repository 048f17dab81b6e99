from datetime import datetime
from typing import Optional, Dict, Any
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, JSON, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP


class Base(DeclarativeBase):
    pass


# Helper to support both Postgres JSONB and generic JSON (for SQLite tests)
JSON_TYPE = JSON().with_variant(JSONB, 'postgresql')
TIMESTAMP_TYPE = DateTime(timezone=True).with_variant(TIMESTAMP(timezone=True), 'postgresql')


# --- Documents ---

class DocumentModel(Base):
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    # NULL means the document is not locale specific
    locale: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON_TYPE, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now(), onupdate=func.now())

    def to_document(self) -> Dict[str, Any]:
        document = dict(self.data)
        document["id"] = self.id
        document["locale"] = self.locale
        return document


# --- Locks ---

class LockModel(Base):
    __tablename__ = "locks"

    # Primary key uniqueness is what makes the lock exclusive
    name: Mapped[str] = mapped_column(String, primary_key=True)
    acquired_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now())
