"""Core orchestration logic for the daily absence notification job."""

from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from .aggregator import AbsenceAggregator
from .db import Database, DocumentStore
from .dispatcher import NotificationDispatcher
from .eligibility import parse_iso_date
from .models import JobSummary, NotificationRecord, ReconciliationDocument, Session, Student

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AbsenceJobService:
    """Runs check-existing, aggregate, dispatch and persist for one date."""

    def __init__(
        self,
        store: DocumentStore,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.aggregator = AbsenceAggregator(store)
        self.clock = clock

    async def run(self, day: Optional[str] = None, force: bool = False) -> JobSummary:
        """Run the job and report the outcome; errors are returned, never raised."""

        target = day or self.clock().date().isoformat()
        try:
            return await self._run(target, force)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Absence notification job failed for %s", target)
            return JobSummary(success=False, date=target, error=str(exc) or type(exc).__name__)

    async def _run(self, day: str, force: bool) -> JobSummary:
        day = parse_iso_date(day).isoformat()
        logger.info("Target date: %s", day)

        existing = self.store.get_reconciliation(day)
        if existing is not None:
            logger.info("Notifications for %s already exist", day)
            if not force:
                return JobSummary(
                    success=True,
                    date=day,
                    message="Job already run for this date",
                    total_notifications=existing.total_notifications,
                    success_count=existing.success_count,
                    failed_count=existing.failed_count,
                    skipped=True,
                )
            logger.info("Force flag set, re-sending notifications for %s", day)

        notifications = self.aggregator.aggregate(day)
        if not notifications:
            logger.info("No notifications to send for %s", day)
            return JobSummary(success=True, date=day, message="No notifications to send")

        batch = await self.dispatcher.dispatch(notifications, day)
        document = self.write_reconciliation(day, notifications)

        logger.info(
            "Job completed for %s: %d sent, %d failed",
            day,
            document.success_count,
            document.failed_count,
        )
        return JobSummary(
            success=True,
            date=day,
            message=f"Sent {document.success_count} notifications, {document.failed_count} failed",
            total_notifications=document.total_notifications,
            success_count=document.success_count,
            failed_count=document.failed_count,
            gateway_message=batch.message,
        )

    def write_reconciliation(self, day: str, notifications: List[NotificationRecord]) -> ReconciliationDocument:
        """Replace the stored document for ``day``; both timestamps are reset on every write."""

        now = self.clock()
        document = ReconciliationDocument(
            date=day,
            notifications=list(notifications),
            created_at=now,
            updated_at=now,
        )
        self.store.put_reconciliation(document)
        logger.info("Stored notification data for %s", day)
        return document

    def get_report(self, day: str) -> Optional[Dict[str, Any]]:
        document = self.store.get_reconciliation(day)
        if document is None:
            return None
        data = document.to_document()
        data["createdAt"] = _isoformat(data["createdAt"])
        data["updatedAt"] = _isoformat(data["updatedAt"])
        for notification in data["notifications"]:
            notification["sentAt"] = _isoformat(notification["sentAt"])
        return data


def load_roster_csv(path: Path) -> Iterable[Student]:
    with path.open(newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        for row in reader:
            if not row.get("usn") or not row.get("section"):
                continue
            yield Student(
                usn=row["usn"].strip(),
                name=(row.get("name") or row["usn"]).strip(),
                section=row["section"].strip(),
                phone=(row.get("phone") or "").strip() or None,
            )


def import_roster(database: Database, path: Path) -> int:
    count = 0
    for student in load_roster_csv(path):
        database.upsert_student(student)
        count += 1
    logger.info("Imported %d students from %s", count, path)
    return count


def load_sessions_csv(path: Path) -> Iterable[Session]:
    """Yield sessions from a ``section,date,session,presentStudents`` export.

    ``presentStudents`` holds USNs separated by semicolons or whitespace.
    """

    with path.open(newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        for row in reader:
            if not row.get("section") or not row.get("date") or not row.get("session"):
                continue
            present = (row.get("presentStudents") or "").replace(";", " ").split()
            yield Session(
                section=row["section"].strip(),
                date=parse_iso_date(row["date"].strip()).isoformat(),
                slot=row["session"].strip(),
                present_students=frozenset(present),
                total_students=int(row.get("totalStudents") or 0),
            )


def import_sessions(database: Database, path: Path) -> int:
    count = 0
    for session in load_sessions_csv(path):
        database.record_session(session)
        count += 1
    logger.info("Imported %d attendance sessions from %s", count, path)
    return count


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


__all__ = [
    "AbsenceJobService",
    "import_roster",
    "import_sessions",
    "load_roster_csv",
    "load_sessions_csv",
    "utc_now",
]
