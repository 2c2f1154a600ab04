"""Document store interface and its SQLite implementation.

Sessions and rosters are written by the attendance-taking workflow; this job
only reads them. The SQLite store can be seeded from CSV exports through
`service.import_roster` and `service.import_sessions`.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, List, Optional, Protocol

from .models import ReconciliationDocument, Session, Student

Connection = sqlite3.Connection


class DocumentStore(Protocol):
    """Reads attendance data and reads/writes the per-date reconciliation document."""

    def get_sessions_by_date(self, day: str) -> List[Session]: ...

    def get_sessions_by_section(self, section: str) -> List[Session]: ...

    def get_students_by_section(self, section: str) -> List[Student]: ...

    def get_reconciliation(self, day: str) -> Optional[ReconciliationDocument]: ...

    def put_reconciliation(self, document: ReconciliationDocument) -> None: ...


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class Database:
    """Lightweight wrapper around SQLite operations."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize()

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _initialize(self) -> None:
        with self.connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS students (
                    usn TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    phone TEXT,
                    section TEXT NOT NULL,
                    updated_at TEXT
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS attendance_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    section TEXT NOT NULL,
                    date TEXT NOT NULL,
                    slot TEXT NOT NULL,
                    present_students TEXT NOT NULL,
                    total_students INTEGER NOT NULL DEFAULT 0,
                    UNIQUE(section, date, slot)
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS attendance_notifications (
                    date TEXT PRIMARY KEY,
                    document TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.commit()

    # region Students
    def upsert_student(self, student: Student) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO students (usn, name, phone, section, updated_at)
                VALUES (:usn, :name, :phone, :section, :updated_at)
                ON CONFLICT(usn) DO UPDATE SET
                    name=excluded.name,
                    phone=excluded.phone,
                    section=excluded.section,
                    updated_at=excluded.updated_at
                """,
                {
                    "usn": student.usn,
                    "name": student.name,
                    "phone": student.phone,
                    "section": student.section,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                },
            )
            conn.commit()

    def get_students_by_section(self, section: str) -> List[Student]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM students WHERE section = ? ORDER BY usn",
                (section,),
            )
            return [
                Student(usn=row["usn"], name=row["name"], section=row["section"], phone=row["phone"])
                for row in cursor.fetchall()
            ]

    # endregion

    # region Sessions
    def record_session(self, session: Session) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO attendance_sessions (section, date, slot, present_students, total_students)
                VALUES (:section, :date, :slot, :present_students, :total_students)
                ON CONFLICT(section, date, slot) DO UPDATE SET
                    present_students=excluded.present_students,
                    total_students=excluded.total_students
                """,
                {
                    "section": session.section,
                    "date": session.date,
                    "slot": session.slot,
                    "present_students": json.dumps(sorted(session.present_students)),
                    "total_students": session.total_students,
                },
            )
            conn.commit()

    def get_sessions_by_date(self, day: str) -> List[Session]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM attendance_sessions WHERE date = ? ORDER BY id",
                (day,),
            )
            return [_session_from_row(row) for row in cursor.fetchall()]

    def get_sessions_by_section(self, section: str) -> List[Session]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM attendance_sessions WHERE section = ? ORDER BY date, id",
                (section,),
            )
            return [_session_from_row(row) for row in cursor.fetchall()]

    # endregion

    # region Reconciliation documents
    def get_reconciliation(self, day: str) -> Optional[ReconciliationDocument]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT document FROM attendance_notifications WHERE date = ?",
                (day,),
            )
            row = cursor.fetchone()
            if not row:
                return None
            return ReconciliationDocument.from_document(json.loads(row["document"]))

    def put_reconciliation(self, document: ReconciliationDocument) -> None:
        payload = json.dumps(document.to_document(), default=_json_default)
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO attendance_notifications (date, document, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(date) DO UPDATE SET
                    document=excluded.document,
                    updated_at=excluded.updated_at
                """,
                (document.date, payload, document.updated_at.isoformat()),
            )
            conn.commit()

    # endregion


def _session_from_row(row: sqlite3.Row) -> Session:
    return Session(
        section=row["section"],
        date=row["date"],
        slot=row["slot"],
        present_students=frozenset(json.loads(row["present_students"])),
        total_students=row["total_students"],
    )


__all__ = ["Database", "DocumentStore"]
