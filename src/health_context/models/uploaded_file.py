"""Uploaded document data model."""

from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Date, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from health_context.models.base import HealthRecord, utc_now


class UploadedFile(HealthRecord):
    """Entries extracted from a user-submitted document.

    Extraction happens upstream; this table is read-only here. The
    extracted_data column holds ``{"entries": [{"date", "metrics", "notes"}]}``.
    """

    __tablename__ = "uploaded_file_data"
    __table_args__ = ({"comment": "Structured data extracted from uploaded health documents"},)

    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    extracted_data: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    data_categories: Mapped[list[str] | None] = mapped_column(JSON)
    summary: Mapped[str | None] = mapped_column(Text)

    # Dates covered by the document itself (lab draw date, log period, ...)
    date_range_start: Mapped[date | None] = mapped_column(Date)
    date_range_end: Mapped[date | None] = mapped_column(Date)

    upload_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        index=True,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<UploadedFile(user_id={self.user_id}, file_name={self.file_name})>"

    @property
    def entries(self) -> list[dict[str, Any]]:
        """Extracted entries; anything not shaped like an entry is dropped."""
        if not isinstance(self.extracted_data, dict):
            return []
        entries = self.extracted_data.get("entries")
        if not isinstance(entries, list):
            return []
        return [entry for entry in entries if isinstance(entry, dict)]

    @property
    def categories(self) -> list[str]:
        """Declared data categories."""
        if not isinstance(self.data_categories, list):
            return []
        return [str(c) for c in self.data_categories]

    def has_category(self, categories: list[str]) -> bool:
        """Check whether any of the given categories is declared on this file."""
        declared = {c.lower() for c in self.categories}
        return any(c.lower() in declared for c in categories)
