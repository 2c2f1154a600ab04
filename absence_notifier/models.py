"""Dataclasses representing absence notifier domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

STATUS_PENDING = "pending"
STATUS_SENT = "sent"
STATUS_FAILED = "failed"


@dataclass(slots=True)
class Session:
    section: str
    date: str
    slot: str
    present_students: frozenset[str] = frozenset()
    total_students: int = 0

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "Session":
        return cls(
            section=data["section"],
            date=data["date"],
            slot=str(data.get("session") or data.get("slot") or ""),
            present_students=frozenset(data.get("presentStudents") or ()),
            total_students=int(data.get("totalStudents") or 0),
        )


@dataclass(slots=True)
class Student:
    usn: str
    name: str
    section: str
    phone: str | None = None

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "Student":
        return cls(
            usn=data["usn"],
            name=data.get("name") or data["usn"],
            section=data["section"],
            phone=data.get("phone") or None,
        )


@dataclass(slots=True)
class NotificationRecord:
    usn: str
    name: str
    phone: str
    missed_sessions: List[str]
    total_sessions: int
    status: str = STATUS_PENDING
    guid: Optional[str] = None
    sent_at: Optional[datetime] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "usn": self.usn,
            "name": self.name,
            "phone": self.phone,
            "missedSessions": list(self.missed_sessions),
            "totalSessions": self.total_sessions,
            "guid": self.guid,
            "status": self.status,
            "sentAt": self.sent_at,
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "NotificationRecord":
        return cls(
            usn=data["usn"],
            name=data.get("name", ""),
            phone=data.get("phone", ""),
            missed_sessions=list(data.get("missedSessions") or []),
            total_sessions=int(data.get("totalSessions") or 0),
            status=data.get("status") or STATUS_PENDING,
            guid=data.get("guid"),
            sent_at=_as_datetime(data.get("sentAt")),
        )


@dataclass(slots=True)
class ReconciliationDocument:
    """The persisted record of every notification attempt for one date."""

    date: str
    notifications: List[NotificationRecord]
    created_at: datetime
    updated_at: datetime

    @property
    def total_notifications(self) -> int:
        return len(self.notifications)

    @property
    def success_count(self) -> int:
        return sum(1 for n in self.notifications if n.status == STATUS_SENT)

    @property
    def failed_count(self) -> int:
        return self.total_notifications - self.success_count

    def to_document(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "totalNotifications": self.total_notifications,
            "successCount": self.success_count,
            "failedCount": self.failed_count,
            "notifications": [n.to_document() for n in self.notifications],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "ReconciliationDocument":
        return cls(
            date=data["date"],
            notifications=[NotificationRecord.from_document(n) for n in data.get("notifications") or []],
            created_at=_as_datetime(data.get("createdAt")),
            updated_at=_as_datetime(data.get("updatedAt")),
        )


@dataclass(slots=True)
class JobSummary:
    """Outcome of one job invocation, rendered as the trigger's JSON body."""

    success: bool
    date: Optional[str] = None
    message: str = ""
    total_notifications: int = 0
    success_count: int = 0
    failed_count: int = 0
    error: Optional[str] = None
    gateway_message: Optional[str] = None
    skipped: bool = field(default=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            payload: Dict[str, Any] = {"success": False, "error": self.error or self.message}
            if self.date:
                payload["date"] = self.date
            return payload
        payload = {
            "success": True,
            "date": self.date,
            "message": self.message,
            "count": self.total_notifications,
            "totalNotifications": self.total_notifications,
            "successCount": self.success_count,
            "failedCount": self.failed_count,
        }
        if self.gateway_message:
            payload["gatewayMessage"] = self.gateway_message
        return payload


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


__all__ = [
    "Session",
    "Student",
    "NotificationRecord",
    "ReconciliationDocument",
    "JobSummary",
    "STATUS_PENDING",
    "STATUS_SENT",
    "STATUS_FAILED",
]
