from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from lockeradmin.infrastructure.database import Base


class DocumentModel(Base):
    """
    One schema-less document. The body is stored as-is so fields written by
    other clients (mobile app, firmware) survive a dashboard write untouched.
    """
    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String, primary_key=True)
    doc_id: Mapped[str] = mapped_column(String, primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    update_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
