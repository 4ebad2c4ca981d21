from datetime import datetime

import pytest

from ranttrack.temporal.resolver import DateutilResolver

# Monday, Jan 6 2025 at 2pm
REF = datetime(2025, 1, 6, 14, 0)

resolver = DateutilResolver()


def resolve_one(text):
    refs = resolver.resolve(text, REF)
    assert len(refs) == 1, refs
    return refs[0]


@pytest.mark.parametrize("text,expected", [
    ("Yesterday I had pain", datetime(2025, 1, 5)),
    ("last night was rough", datetime(2025, 1, 5)),
    ("today is a bad day", datetime(2025, 1, 6)),
    ("this morning I woke up stiff", datetime(2025, 1, 6)),
    ("the day before yesterday I crashed", datetime(2025, 1, 4)),
    ("three days ago", datetime(2025, 1, 3)),
    ("a couple of days ago", datetime(2025, 1, 4)),
    ("2 weeks back", datetime(2024, 12, 23)),
    ("last week was a blur", datetime(2024, 12, 30)),
])
def test_relative_days_resolve_to_midnight(text, expected):
    assert resolve_one(text).resolved_date == expected


def test_longest_phrase_wins():
    ref = resolve_one("the day before yesterday I crashed")
    assert ref.matched_text == "the day before yesterday"
    assert (ref.start_index, ref.end_index) == (0, 24)


@pytest.mark.parametrize("text,expected", [
    ("On Friday I had a terrible headache", datetime(2025, 1, 3, 12)),
    ("Saturday I rested", datetime(2025, 1, 4, 12)),
    ("last Friday", datetime(2025, 1, 3, 12)),
    ("last Monday", datetime(2024, 12, 30, 12)),
    ("Monday morning", datetime(2025, 1, 6, 12)),
])
def test_weekdays_resolve_at_noon(text, expected):
    ref = resolve_one(text)
    assert ref.resolved_date == expected
    assert ref.specificity.day is True
    assert ref.specificity.month is False


def test_bare_weekday_picks_closest_occurrence():
    # Wednesday is two days ahead and five days back; segmentation rolls it into the past
    assert resolve_one("Wednesday was rough").resolved_date == datetime(2025, 1, 8, 12)


def test_on_prefix_is_part_of_the_match():
    ref = resolve_one("On Friday I had a terrible headache")
    assert ref.matched_text == "On Friday"
    assert ref.start_index == 0


@pytest.mark.parametrize("text,expected,year_given", [
    ("December 28 was awful", datetime(2024, 12, 28, 12), False),
    ("on the 15th of March 2024", datetime(2024, 3, 15, 12), True),
    ("Jan 2nd", datetime(2025, 1, 2, 12), False),
    ("3/15/2024", datetime(2024, 3, 15, 12), True),
])
def test_explicit_dates(text, expected, year_given):
    ref = resolve_one(text)
    assert ref.resolved_date == expected
    assert ref.specificity.day and ref.specificity.month
    assert ref.specificity.year is year_given


@pytest.mark.parametrize("text", [
    "February 31 was a mess",
    "13/45/2024",
    "pain was 8/10",
    "nothing dated here",
    "",
])
def test_unresolvable_fragments_are_omitted(text):
    assert resolver.resolve(text, REF) == []


def test_multiple_references_in_text_order():
    text = "Friday I had fatigue. Saturday I rested. Sunday I felt better."
    refs = resolver.resolve(text, REF)
    assert [r.matched_text for r in refs] == ["Friday", "Saturday", "Sunday"]
    assert [r.resolved_date.day for r in refs] == [3, 4, 5]
    for r in refs:
        assert text[r.start_index:r.end_index] == r.matched_text


@pytest.mark.parametrize("text", ["I may 2 be tired", "it may 3 times a day", "mar 4 plans"])
def test_verb_months_need_a_date_shape(text):
    assert resolver.resolve(text, REF) == []


@pytest.mark.parametrize("text", ["May 2 was bad", "may 2nd was bad", "may 2, 2024 was bad"])
def test_may_as_a_month(text):
    ref = resolve_one(text)
    assert (ref.resolved_date.month, ref.resolved_date.day) == (5, 2)
