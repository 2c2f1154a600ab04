"""Business rules deciding who gets an absence SMS."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

MIN_MISSED_SESSIONS = 2
SHORT_DAY_SESSIONS = 2
MOBILE_PATTERN = re.compile(r"^[6-9]\d{9}$")


def should_notify(missed_count: int, section_session_count: int) -> bool:
    """Return whether a student's absences for the day warrant a notification.

    A single absence is tolerated unless the section only held one or two
    sessions that day, in which case any absence counts.
    """

    if missed_count >= MIN_MISSED_SESSIONS:
        return True
    return section_session_count <= SHORT_DAY_SESSIONS and missed_count >= 1


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Return a bare 10 digit mobile number, or None if the value is unusable."""

    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 12 and digits.startswith("91"):
        digits = digits[2:]
    if not MOBILE_PATTERN.match(digits):
        return None
    return digits


def parse_iso_date(value: str) -> date:
    return datetime.strptime(value, "%Y-%m-%d").date()


def format_gateway_date(value: str) -> str:
    """Convert ``YYYY-MM-DD`` into the ``dd/mm/yyyy`` form the SMS template expects."""

    return parse_iso_date(value).strftime("%d/%m/%Y")


__all__ = [
    "should_notify",
    "normalize_phone",
    "parse_iso_date",
    "format_gateway_date",
    "MIN_MISSED_SESSIONS",
    "SHORT_DAY_SESSIONS",
]
