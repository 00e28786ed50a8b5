"""SQLAlchemy models for the sharrr server.

This module defines the database schema using SQLAlchemy ORM.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


class Secret(Base):
    """A shared file: who may read its chunks and how to reassemble it.

    ``file_meta`` and ``file_reference`` are stored as JSON text; the
    server never sees the decryption key.
    """

    __tablename__ = "secrets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    alias: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    public_key: Mapped[str] = mapped_column(Text, nullable=False)
    file_meta: Mapped[str] = mapped_column(Text, nullable=False)
    file_reference: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )


class Stats(Base):
    """Usage statistics (single row, id=1)."""

    __tablename__ = "stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    total_files_uploaded: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_bytes_uploaded: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
