"""
Date-phrase recognition for catch-up entries.

`TemporalReferenceResolver` is the narrow seam segmentation depends on; anything with a matching
`resolve(text, reference_date)` works (tests use a hand-rolled stub). `DateutilResolver` is the
default: regexes find candidate phrases, `dateutil` does the calendar arithmetic and parsing.
Fragments that do not form a real date are dropped, never raised.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol, Tuple

from dateutil import parser as date_parser
from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta

from ranttrack.observability.logs import log_event


@dataclass(frozen=True)
class Specificity:
    """Which calendar components the phrase stated outright."""
    day: bool = False
    month: bool = False
    year: bool = False


@dataclass(frozen=True)
class DateReference:
    matched_text: str
    start_index: int
    end_index: int
    resolved_date: datetime
    specificity: Specificity = field(default_factory=Specificity)


class TemporalReferenceResolver(Protocol):
    def resolve(self, text: str, reference_date: datetime) -> List[DateReference]:
        ...


# ---- PATTERNS ----
_NUMBER_WORDS = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
    "a couple": 2, "a couple of": 2, "couple": 2, "couple of": 2, "a few": 3, "few": 3,
}
_COUNT = r"(\d{1,2}|a\s+couple(?:\s+of)?|couple(?:\s+of)?|a\s+few|few|an?|one|two|three|four|five|six|seven|eight|nine|ten|eleven|twelve)"

# (pattern, day offset); "N days ago" is handled separately
_RELATIVE_DAYS = (
    (re.compile(r"\b(?:the\s+)?day\s+before\s+yesterday\b", re.I), -2),
    (re.compile(r"\byesterday\b", re.I), -1),
    (re.compile(r"\blast\s+night\b", re.I), -1),
    (re.compile(r"\b(?:today|tonight|this\s+(?:morning|afternoon|evening))\b", re.I), 0),
    (re.compile(r"\blast\s+week\b", re.I), -7),
)
AGO_RE = re.compile(r"\b" + _COUNT + r"\s+(days?|weeks?)\s+(?:ago|back)\b", re.I)

_WEEKDAYS = {
    "monday": MO, "tuesday": TU, "wednesday": WE, "thursday": TH,
    "friday": FR, "saturday": SA, "sunday": SU,
}
WEEKDAY_RE = re.compile(
    r"\b(?:on\s+)?(?:(last|this|past)\s+)?(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
    re.I,
)

_MONTH = (
    r"(january|february|march|april|may|june|july|august|september|october|november|december"
    r"|jan|feb|mar|apr|jun|jul|aug|sept|sep|oct|nov|dec)\.?"
)
_ORD = r"(\d{1,2})(?:st|nd|rd|th)?"
MONTH_DAY_RE = re.compile(
    r"\b(?:on\s+)?" + _MONTH + r"\s+(?:the\s+)?" + _ORD + r"(?:,?\s+(\d{4}))?\b", re.I
)
DAY_MONTH_RE = re.compile(
    r"\b(?:on\s+)?(?:the\s+)?" + _ORD + r"\s+(?:of\s+)?" + _MONTH + r"(?:,?\s+(\d{4}))?\b", re.I
)
# month names that are also everyday words ("I may 2 ...")
_VERB_MONTHS = {"may", "mar"}
_HAS_ORDINAL_RE = re.compile(r"\d(?:st|nd|rd|th)\b", re.I)
# numeric dates only count with a year; "3/15" alone reads too much like a score
NUMERIC_DATE_RE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})\b|\b(\d{4})-(\d{2})-(\d{2})\b")


def _count(token: str) -> int:
    token = re.sub(r"\s+", " ", token.lower())
    if token.isdigit():
        return int(token)
    return _NUMBER_WORDS[token]


def _reads_as_month(m: "re.Match[str]") -> bool:
    """Lowercase "may 2" needs an ordinal or a year before it counts as a date."""
    month = m.group(1)
    if month.rstrip(".").lower() not in _VERB_MONTHS or month[0].isupper():
        return True
    return m.group(3) is not None or _HAS_ORDINAL_RE.search(m.group(0)) is not None


def _start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _implied_noon(day: datetime, reference: datetime) -> datetime:
    noon = day.replace(hour=12, minute=0, second=0, microsecond=0)
    # on the reference day itself, noon may lie ahead of "now"
    if noon.date() == reference.date() and noon > reference:
        return reference
    return noon


class DateutilResolver:
    """Regex-located date phrases resolved with dateutil."""

    def resolve(self, text: str, reference_date: datetime) -> List[DateReference]:
        candidates: List[DateReference] = []
        candidates += self._relative(text, reference_date)
        candidates += self._weekdays(text, reference_date)
        candidates += self._month_dates(text, reference_date)
        candidates += self._numeric_dates(text, reference_date)
        return _longest_non_overlapping(candidates)

    def _relative(self, text: str, ref: datetime) -> List[DateReference]:
        out: List[DateReference] = []
        midnight = _start_of_day(ref)
        for rx, offset in _RELATIVE_DAYS:
            for m in rx.finditer(text):
                out.append(DateReference(m.group(0), m.start(), m.end(),
                                         midnight + relativedelta(days=offset)))
        for m in AGO_RE.finditer(text):
            n = _count(m.group(1))
            if m.group(2).lower().startswith("week"):
                delta = relativedelta(weeks=-n)
            else:
                delta = relativedelta(days=-n)
            out.append(DateReference(m.group(0), m.start(), m.end(), midnight + delta))
        return out

    def _weekdays(self, text: str, ref: datetime) -> List[DateReference]:
        out: List[DateReference] = []
        for m in WEEKDAY_RE.finditer(text):
            modifier = (m.group(1) or "").lower()
            wd = _WEEKDAYS[m.group(2).lower()]
            if modifier in ("last", "past"):
                day = ref + relativedelta(days=-1, weekday=wd(-1))
            else:
                back = ref + relativedelta(weekday=wd(-1))
                ahead = ref + relativedelta(weekday=wd(+1))
                day = ahead if (ahead - ref) < (ref - back) else back
            out.append(DateReference(m.group(0), m.start(), m.end(), _implied_noon(day, ref),
                                     Specificity(day=True)))
        return out

    def _month_dates(self, text: str, ref: datetime) -> List[DateReference]:
        out: List[DateReference] = []
        for rx, month_group, day_group in ((MONTH_DAY_RE, 1, 2), (DAY_MONTH_RE, 2, 1)):
            for m in rx.finditer(text):
                year = m.group(3)
                if rx is MONTH_DAY_RE and not _reads_as_month(m):
                    continue
                resolved = self._parse_month_day(m.group(month_group), m.group(day_group), year, ref)
                if resolved is None:
                    continue
                out.append(DateReference(m.group(0), m.start(), m.end(), resolved,
                                         Specificity(day=True, month=True, year=year is not None)))
        return out

    def _parse_month_day(self, month: str, day: str, year: Optional[str],
                         ref: datetime) -> Optional[datetime]:
        # day=1 so a default day never overflows a short month
        default = ref.replace(day=1, hour=12, minute=0, second=0, microsecond=0)
        years = [year] if year else [str(y) for y in (ref.year - 1, ref.year, ref.year + 1)]
        options = []
        for y in years:
            try:
                options.append(date_parser.parse(f"{month} {day} {y}", default=default))
            except (ValueError, OverflowError):
                continue
        if not options:
            log_event("date_fragment_dropped", level=logging.DEBUG, kind="month_day")
            return None
        closest = min(options, key=lambda d: abs((d - ref).total_seconds()))
        return _implied_noon(closest, ref)

    def _numeric_dates(self, text: str, ref: datetime) -> List[DateReference]:
        out: List[DateReference] = []
        default = ref.replace(hour=12, minute=0, second=0, microsecond=0)
        for m in NUMERIC_DATE_RE.finditer(text):
            try:
                parsed = date_parser.parse(m.group(0), default=default, dayfirst=False)
            except (ValueError, OverflowError):
                log_event("date_fragment_dropped", level=logging.DEBUG, kind="numeric")
                continue
            out.append(DateReference(m.group(0), m.start(), m.end(), _implied_noon(parsed, ref),
                                     Specificity(day=True, month=True, year=True)))
        return out


def _longest_non_overlapping(refs: List[DateReference]) -> List[DateReference]:
    kept: List[DateReference] = []
    taken: List[Tuple[int, int]] = []
    for ref in sorted(refs, key=lambda r: (-(r.end_index - r.start_index), r.start_index)):
        if any(ref.start_index < e and s < ref.end_index for s, e in taken):
            continue
        kept.append(ref)
        taken.append((ref.start_index, ref.end_index))
    return sorted(kept, key=lambda r: r.start_index)
