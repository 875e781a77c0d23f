"""
Email log models.

One entry per outbound email about an order (confirmation, status change,
custom message). Entries are append-only: written once when the email is
dispatched, never updated or deleted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

PREVIEW_LENGTH = 200


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Normalize a stored timestamp to an aware UTC datetime.

    PostgreSQL hands back datetimes; SQLite hands back the ISO string that
    was written.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class EmailLogEntry:
    """A sent email, as recorded against an order."""

    id: int
    """Row id."""

    order_id: int
    """Order the email was about."""

    subject: str
    """Subject line."""

    content: str
    """Full body as sent."""

    sent_at: datetime
    """When the email was dispatched (UTC)."""

    template_id: Optional[str] = None
    """Template used, if the email was generated from one."""

    @property
    def preview(self) -> str:
        """First PREVIEW_LENGTH characters of the content."""
        return self.content[:PREVIEW_LENGTH]

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "order_id": self.order_id,
            "subject": self.subject,
            "content": self.content,
            "sent_at": self.sent_at.isoformat(),
            "status": "sent",
            "preview": self.preview,
        }
        if self.template_id:
            data["template_id"] = self.template_id
        return data

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "EmailLogEntry":
        return cls(
            id=row["id"],
            order_id=row["order_id"],
            subject=row.get("subject") or "",
            content=row.get("content") or "",
            sent_at=parse_timestamp(row["sent_at"]),
            template_id=row.get("template_id"),
        )
