from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from absence_notifier.config import Settings
from absence_notifier.models import ReconciliationDocument, Session, Student
from absence_notifier.sms_client import SmsBatchResult, SmsRecipient, SmsResult


class FakeStore:
    def __init__(self, sessions: Optional[List[Session]] = None, students: Optional[List[Student]] = None):
        self.sessions = list(sessions or [])
        self.students = list(students or [])
        self.documents: Dict[str, ReconciliationDocument] = {}
        self.writes = 0
        self.fail_roster_for: Optional[str] = None

    def get_sessions_by_date(self, day):
        return [s for s in self.sessions if s.date == day]

    def get_sessions_by_section(self, section):
        return [s for s in self.sessions if s.section == section]

    def get_students_by_section(self, section):
        if section == self.fail_roster_for:
            raise ConnectionError("store unavailable")
        return [s for s in self.students if s.section == section]

    def get_reconciliation(self, day):
        return self.documents.get(day)

    def put_reconciliation(self, document):
        self.writes += 1
        self.documents[document.date] = document


class FakeGateway:
    """Answers each batch from a queue of per-recipient outcomes, or all-success."""

    def __init__(self, outcomes: Optional[List[SmsResult]] = None, error: Optional[Exception] = None):
        self.outcomes = outcomes
        self.error = error
        self.calls: List[List[SmsRecipient]] = []

    async def send_batch(self, recipients):
        self.calls.append(list(recipients))
        if self.error is not None:
            raise self.error
        if self.outcomes is not None and len(self.calls) == 1:
            return SmsBatchResult(results=list(self.outcomes), message="ok")
        return SmsBatchResult(
            results=[SmsResult(phone=r.phone, success=True, guid=f"guid-{i}") for i, r in enumerate(recipients)],
            message="ok",
        )


def make_session(section: str, day: str, slot: str, present: List[str]) -> Session:
    return Session(section=section, date=day, slot=slot, present_students=frozenset(present))


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        sms_api_url="https://sms.example.test",
        sms_api_key="test-key",
        sms_template_text="Your ward missed {#var#} classes on {#var#}",
        sms_template_id=1207,
        database_path=tmp_path / "notifier.db",
        student_roster_path=tmp_path / "students.csv",
        cron_secret="s3cret",
    )


@pytest.fixture
def fixed_clock():
    moments = iter(
        [
            datetime(2024, 1, 10, 11, 0, tzinfo=timezone.utc),
            datetime(2024, 1, 11, 11, 0, tzinfo=timezone.utc),
            datetime(2024, 1, 12, 11, 0, tzinfo=timezone.utc),
            datetime(2024, 1, 13, 11, 0, tzinfo=timezone.utc),
        ]
    )
    return lambda: next(moments)


@pytest.fixture
def section_x() -> FakeStore:
    """Section X on 2024-01-10: three sessions, five students."""

    day = "2024-01-10"
    students = [
        Student(usn="S1", name="Asha", section="X", phone="9876543210"),
        Student(usn="S2", name="Bala", section="X", phone="9876543211"),
        Student(usn="S3", name="Chitra", section="X", phone="+91 98765 43212"),
        Student(usn="S4", name="Dev", section="X", phone=None),
        Student(usn="S5", name="Esha", section="X", phone="9876543214"),
    ]
    sessions = [
        make_session("X", day, "9:00-10:00", ["S2", "S4", "S5"]),
        make_session("X", day, "10:00-11:00", ["S1", "S5"]),
        make_session("X", day, "11:15-12:15", ["S2", "S5"]),
    ]
    return FakeStore(sessions=sessions, students=students)
