from datetime import datetime, timedelta

import pytest

from ranttrack.temporal.resolver import DateReference, Specificity
from ranttrack.temporal.segmentation import (
    SegmentedEntry,
    days_since_last_entry,
    extract_dates,
    format_date,
    group_segments_by_date,
    has_missed_days,
    normalize_to_start_of_day,
    segment_by_date,
    validate_and_fix_dates,
)

MONDAY = datetime(2025, 1, 6, 14, 0)
WEDNESDAY = datetime(2025, 1, 8, 10, 0)
SATURDAY = datetime(2025, 1, 11, 18, 0)


class StubResolver:
    """Returns canned references for the phrases it is given."""

    def __init__(self, phrases):
        self.phrases = phrases  # phrase -> (resolved date, Specificity)

    def resolve(self, text, reference_date):
        out = []
        for phrase, (when, specificity) in self.phrases.items():
            i = text.find(phrase)
            if i >= 0:
                out.append(DateReference(phrase, i, i + len(phrase), when, specificity))
        return sorted(out, key=lambda r: r.start_index)


class BrokenResolver:
    def resolve(self, text, reference_date):
        raise RuntimeError("calendar backend down")


def test_future_dates_roll_back_by_weeks():
    future = MONDAY + timedelta(days=3)
    stub = StubResolver({"Thursday": (future, Specificity(day=True))})
    [d] = extract_dates("Thursday was bad", MONDAY, stub)
    assert d.timestamp == future - timedelta(weeks=1)
    assert d.timestamp.weekday() == future.weekday()
    assert d.timestamp <= MONDAY


def test_far_future_date_keeps_rolling():
    future = MONDAY + timedelta(weeks=5, days=2)
    stub = StubResolver({"then": (future, Specificity())})
    [d] = extract_dates("then", MONDAY, stub)
    assert d.timestamp <= MONDAY
    assert MONDAY - d.timestamp < timedelta(weeks=1)


@pytest.mark.parametrize("phrase,specificity,expected", [
    ("yesterday", Specificity(), 0.9),
    ("Friday", Specificity(day=True), 0.8),
    ("March 3", Specificity(day=True, month=True), 0.85),
    ("3/3/2024", Specificity(day=True, month=True, year=True), 1.0),
    ("three days ago", Specificity(), 0.5),
])
def test_confidence(phrase, specificity, expected):
    stub = StubResolver({phrase: (MONDAY - timedelta(days=3), specificity)})
    [d] = extract_dates(f"{phrase} it hurt", MONDAY, stub)
    assert d.confidence == pytest.approx(expected)


def test_failing_resolver_degrades_to_no_references():
    assert extract_dates("Friday I was tired", MONDAY, BrokenResolver()) == []
    [seg] = segment_by_date("Friday I was tired", MONDAY, BrokenResolver())
    assert seg.explicit is False
    assert seg.timestamp == MONDAY


def test_wednesday_reference_resolves_past_monday():
    [seg] = segment_by_date("Monday I had a migraine", WEDNESDAY)
    assert seg.explicit is True
    assert seg.timestamp <= WEDNESDAY
    assert WEDNESDAY - seg.timestamp <= timedelta(days=7)
    assert seg.timestamp.weekday() == 0
    assert seg.text == "I had a migraine"


def test_saturday_catch_up_segments():
    text = "Yesterday I had a headache. Friday I woke up exhausted."
    segs = segment_by_date(text, SATURDAY)

    assert len(segs) == 2
    assert all(s.explicit for s in segs)
    assert segs[0].end_index <= segs[1].start_index
    assert segs[0].timestamp < segs[1].timestamp
    assert all(s.timestamp <= SATURDAY for s in segs)
    assert [s.text for s in segs] == ["I had a headache.", "I woke up exhausted."]


def test_preface_text_is_inferred():
    segs = segment_by_date("I've been feeling terrible. Friday I had pain.", MONDAY)
    assert len(segs) == 2
    assert segs[0].explicit is False
    assert segs[0].text == "I've been feeling terrible."
    assert segs[0].timestamp == MONDAY
    assert segs[1].explicit is True
    assert segs[1].text == "I had pain."


def test_segment_indices_delimit_text():
    text = "  so tired.   Yesterday   I crashed hard.  Friday  brain fog all day   "
    for seg in segment_by_date(text, SATURDAY):
        assert text[seg.start_index:seg.end_index] == seg.text
        assert seg.text == seg.text.strip()


def test_no_references_gives_one_inferred_segment():
    [seg] = segment_by_date("  just wiped out  ", MONDAY)
    assert seg.explicit is False
    assert seg.text == "just wiped out"
    assert seg.timestamp == MONDAY
    assert seg.date_string == "Today"


@pytest.mark.parametrize("text", ["", "   ", "\n"])
def test_blank_text_gives_no_segments(text):
    assert segment_by_date(text, MONDAY) == []


def test_empty_segments_are_dropped():
    stub = StubResolver({
        "Yesterday": (MONDAY - timedelta(days=1), Specificity()),
        "Friday": (MONDAY - timedelta(days=3), Specificity(day=True)),
    })
    segs = segment_by_date("Yesterday  Friday I was tired", MONDAY, stub)
    assert [s.text for s in segs] == ["I was tired"]


def entry(when, text, start, end, explicit=True):
    return SegmentedEntry(timestamp=when, date_string=format_date(when, MONDAY), text=text,
                          start_index=start, end_index=end, explicit=explicit)


def test_group_same_day_segments():
    segs = [
        entry(datetime(2025, 1, 5, 9), "morning was ok", 0, 14, explicit=False),
        entry(datetime(2025, 1, 3, 12), "crashed", 15, 22),
        entry(datetime(2025, 1, 5, 20), "then a migraine", 23, 38),
    ]
    grouped = group_segments_by_date(segs)

    assert [g.timestamp for g in grouped] == [datetime(2025, 1, 3), datetime(2025, 1, 5)]
    assert grouped[1].text == "morning was ok then a migraine"
    assert grouped[1].explicit is True
    assert grouped[1].start_index == 0
    assert grouped[1].end_index == 38


def test_validate_and_fix_dates():
    past = entry(datetime(2025, 1, 3), "I had symptoms", 0, 14)
    future = entry(datetime(2025, 1, 10), "I had symptoms", 0, 14)

    fixed_past, fixed_future = validate_and_fix_dates([past, future], MONDAY)
    assert fixed_past == past
    assert fixed_future.timestamp == datetime(2025, 1, 3)
    assert fixed_future.date_string == "Friday, January 3"


@pytest.mark.parametrize("when,expected", [
    (datetime(2025, 1, 6, 1), "Today"),
    (datetime(2025, 1, 5, 23), "Yesterday"),
    (datetime(2025, 1, 3, 12), "Friday, January 3"),
    (datetime(2024, 3, 15), "Friday, March 15"),
])
def test_format_date(when, expected):
    assert format_date(when, MONDAY) == expected


def test_normalize_to_start_of_day():
    assert normalize_to_start_of_day(MONDAY) == datetime(2025, 1, 6)


@pytest.mark.parametrize("days_ago,missed", [(0.5, False), (2.9, False), (3, True), (10, True)])
def test_has_missed_days(days_ago, missed):
    assert has_missed_days(MONDAY - timedelta(days=days_ago), now=MONDAY) is missed


def test_days_since_last_entry():
    assert days_since_last_entry(MONDAY - timedelta(days=4, hours=5), now=MONDAY) == 4
    assert days_since_last_entry(MONDAY, now=MONDAY) == 0


def test_modal_may_does_not_start_a_segment():
    segs = segment_by_date("I may 2 be tired. Friday I crashed.", MONDAY)
    assert [(s.text, s.explicit) for s in segs] == [
        ("I may 2 be tired.", False),
        ("I crashed.", True),
    ]
