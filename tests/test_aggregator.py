from __future__ import annotations

import pytest

from absence_notifier.aggregator import AbsenceAggregator, collect_missed_sessions
from absence_notifier.models import STATUS_PENDING, Student

from conftest import FakeStore, make_session


def test_section_with_three_sessions_applies_two_miss_threshold(section_x):
    candidates = AbsenceAggregator(section_x).aggregate("2024-01-10")

    assert [c.usn for c in candidates] == ["S1", "S3"]
    s1, s3 = candidates
    assert s1.missed_sessions == ["9:00-10:00", "11:15-12:15"]
    assert s3.missed_sessions == ["9:00-10:00", "10:00-11:00", "11:15-12:15"]
    assert s3.phone == "9876543212"
    assert all(c.status == STATUS_PENDING and c.total_sessions == 3 for c in candidates)


def test_short_day_notifies_on_single_absence():
    day = "2024-02-01"
    store = FakeStore(
        sessions=[
            make_session("Y", day, "9:00-10:00", ["A"]),
            make_session("Y", day, "10:00-11:00", ["A", "B"]),
        ],
        students=[
            Student(usn="A", name="A", section="Y", phone="9000000001"),
            Student(usn="B", name="B", section="Y", phone="9000000002"),
        ],
    )

    candidates = AbsenceAggregator(store).aggregate(day)

    assert [(c.usn, c.missed_sessions) for c in candidates] == [("B", ["9:00-10:00"])]


def test_no_sessions_returns_empty_list():
    assert AbsenceAggregator(FakeStore()).aggregate("2024-01-10") == []


def test_sections_are_evaluated_independently():
    day = "2024-03-05"
    store = FakeStore(
        sessions=[
            make_session("P", day, "s1", []),
            make_session("Q", day, "s1", ["Q1"]),
            make_session("Q", day, "s2", ["Q1"]),
            make_session("Q", day, "s3", []),
        ],
        students=[
            Student(usn="P1", name="P1", section="P", phone="9000000001"),
            Student(usn="Q1", name="Q1", section="Q", phone="9000000002"),
        ],
    )

    candidates = AbsenceAggregator(store).aggregate(day)

    # P held one session so a single miss counts; Q1 missed 1 of 3
    assert [c.usn for c in candidates] == ["P1"]
    assert candidates[0].total_sessions == 1


def test_invalid_phone_is_skipped():
    day = "2024-03-05"
    store = FakeStore(
        sessions=[make_session("P", day, "s1", [])],
        students=[Student(usn="P1", name="P1", section="P", phone="12-34")],
    )

    assert AbsenceAggregator(store).aggregate(day) == []


def test_present_usn_missing_from_roster_is_ignored(caplog):
    roster = [Student(usn="A", name="A", section="Z", phone="9000000001")]
    sessions = [make_session("Z", "2024-01-10", "s1", ["A", "GHOST"])]

    with caplog.at_level("WARNING"):
        missed = collect_missed_sessions(sessions, roster)

    assert missed == {}
    assert "GHOST" in caplog.text


def test_roster_read_failure_aborts_run(section_x):
    section_x.fail_roster_for = "X"

    with pytest.raises(ConnectionError):
        AbsenceAggregator(section_x).aggregate("2024-01-10")
