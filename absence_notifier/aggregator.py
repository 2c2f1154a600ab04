"""Turns a day's attendance sessions into pending absence notifications."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List

from .db import DocumentStore
from .eligibility import normalize_phone, should_notify
from .models import NotificationRecord, Session, Student

logger = logging.getLogger(__name__)


def group_by_section(sessions: List[Session]) -> Dict[str, List[Session]]:
    grouped: Dict[str, List[Session]] = defaultdict(list)
    for session in sessions:
        grouped[session.section].append(session)
    return dict(grouped)


def collect_missed_sessions(sessions: List[Session], roster: List[Student]) -> Dict[str, List[str]]:
    """Map each rostered USN to the slots it was absent from, in session order."""

    roster_usns = {student.usn for student in roster}
    missed: Dict[str, List[str]] = {}
    for session in sessions:
        stale = session.present_students - roster_usns
        if stale:
            logger.warning(
                "Ignoring %d USN(s) not on the %s roster in slot %s: %s",
                len(stale),
                session.section,
                session.slot,
                ", ".join(sorted(stale)),
            )
        for student in roster:
            if student.usn in session.present_students:
                continue
            missed.setdefault(student.usn, []).append(session.slot)
    return missed


class AbsenceAggregator:
    """Builds notification candidates for one date from the document store."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def aggregate(self, day: str) -> List[NotificationRecord]:
        sessions = self.store.get_sessions_by_date(day)
        if not sessions:
            logger.info("No sessions found for %s", day)
            return []
        logger.info("Found %d sessions for %s", len(sessions), day)

        candidates: List[NotificationRecord] = []
        for section, section_sessions in group_by_section(sessions).items():
            logger.info("Processing section %s with %d sessions", section, len(section_sessions))
            roster = self.store.get_students_by_section(section)
            students = {student.usn: student for student in roster}
            missed = collect_missed_sessions(section_sessions, list(students.values()))

            for usn, slots in missed.items():
                if not should_notify(len(slots), len(section_sessions)):
                    continue
                student = students[usn]
                if not student.phone:
                    logger.warning("No phone number for student %s", usn)
                    continue
                phone = normalize_phone(student.phone)
                if phone is None:
                    logger.warning("Invalid phone number for student %s: %r", usn, student.phone)
                    continue
                candidates.append(
                    NotificationRecord(
                        usn=usn,
                        name=student.name,
                        phone=phone,
                        missed_sessions=slots,
                        total_sessions=len(section_sessions),
                    )
                )

        logger.info("Generated %d notifications for %s", len(candidates), day)
        return candidates


__all__ = ["AbsenceAggregator", "collect_missed_sessions", "group_by_section"]
