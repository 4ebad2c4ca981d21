import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from ranttrack.config import MISSED_DAYS_THRESHOLD
from ranttrack.observability.logs import log_event

from .resolver import DateReference, DateutilResolver, TemporalReferenceResolver

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

DEFAULT_RESOLVER = DateutilResolver()


class DateSegment(BaseModel):
    timestamp: datetime
    matched_text: str
    start_index: int
    end_index: int
    confidence: float = Field(ge=0.0, le=1.0)
    date_string: str


class SegmentedEntry(BaseModel):
    timestamp: datetime
    date_string: str
    text: str
    start_index: int
    end_index: int
    explicit: bool


# ---- DATES ----
def normalize_to_start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def format_date(value: datetime, reference: Optional[datetime] = None) -> str:
    """'Today', 'Yesterday' or 'Monday, March 15'."""
    today = normalize_to_start_of_day(reference or datetime.now()).date()
    day = value.date()
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return f"{value:%A}, {value:%B} {value.day}"


def roll_back_to_past(value: datetime, reference: datetime) -> datetime:
    """Step back whole weeks until `value` is not after `reference`; weekday and time survive."""
    while value > reference:
        value -= timedelta(weeks=1)
    return value


def has_missed_days(last_entry: datetime, threshold: float = MISSED_DAYS_THRESHOLD,
                    now: Optional[datetime] = None) -> bool:
    elapsed = (now or datetime.now()) - last_entry
    return elapsed.total_seconds() / 86400 >= threshold


def days_since_last_entry(last_entry: datetime, now: Optional[datetime] = None) -> int:
    return ((now or datetime.now()) - last_entry).days


def score_confidence(ref: DateReference) -> float:
    confidence = 0.5
    if ref.specificity.day:
        confidence += 0.2
    if ref.specificity.month:
        confidence += 0.15
    if ref.specificity.year:
        confidence += 0.15

    lower = ref.matched_text.lower()
    if "yesterday" in lower or "today" in lower:
        confidence = max(confidence, 0.9)
    if any(name in lower for name in WEEKDAY_NAMES):
        confidence = max(confidence, 0.8)
    return round(min(confidence, 1.0), 2)


def extract_dates(text: str, reference_date: Optional[datetime] = None,
                  resolver: Optional[TemporalReferenceResolver] = None) -> List[DateSegment]:
    """
    All date references in `text`, each corrected to lie at or before the reference date.
    A failing resolver yields no references rather than an error.
    """
    ref = reference_date or datetime.now()
    resolver = resolver or DEFAULT_RESOLVER
    try:
        found = resolver.resolve(text, ref)
    except Exception as e:
        log_event("date_resolver_error", level=logging.WARNING, error=type(e).__name__)
        found = []

    segments: List[DateSegment] = []
    for r in found:
        when = roll_back_to_past(r.resolved_date, ref)
        segments.append(DateSegment(
            timestamp=when,
            matched_text=r.matched_text,
            start_index=r.start_index,
            end_index=r.end_index,
            confidence=score_confidence(r),
            date_string=format_date(when, ref),
        ))
    return sorted(segments, key=lambda s: s.start_index)


# ---- SEGMENTS ----
def _trimmed(text: str, start: int, end: int) -> Tuple[int, int]:
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    return start, end


def segment_by_date(text: str, reference_date: Optional[datetime] = None,
                    resolver: Optional[TemporalReferenceResolver] = None) -> List[SegmentedEntry]:
    """
    Slice a catch-up narrative at its date references.

    Each reference owns the text up to the next one. Text before the first reference is dated at
    the reference date with explicit=False. Segment indices delimit the trimmed text exactly.
    """
    if not text.strip():
        return []
    ref = reference_date or datetime.now()
    dates = extract_dates(text, ref, resolver)

    if not dates:
        start, end = _trimmed(text, 0, len(text))
        return [SegmentedEntry(timestamp=ref, date_string=format_date(ref, ref),
                               text=text[start:end], start_index=start, end_index=end,
                               explicit=False)]

    segments: List[SegmentedEntry] = []
    start, end = _trimmed(text, 0, dates[0].start_index)
    if end > start:
        segments.append(SegmentedEntry(timestamp=ref, date_string=format_date(ref, ref),
                                       text=text[start:end], start_index=start, end_index=end,
                                       explicit=False))

    for current, following in zip(dates, dates[1:] + [None]):
        stop = following.start_index if following is not None else len(text)
        start, end = _trimmed(text, current.end_index, stop)
        if end <= start:
            continue
        segments.append(SegmentedEntry(
            timestamp=current.timestamp,
            date_string=current.date_string,
            text=text[start:end],
            start_index=start,
            end_index=end,
            explicit=True,
        ))
    return segments


def group_segments_by_date(segments: List[SegmentedEntry]) -> List[SegmentedEntry]:
    """Merge segments falling on the same calendar day; oldest day first."""
    grouped: Dict[datetime, SegmentedEntry] = {}
    for seg in segments:
        day = normalize_to_start_of_day(seg.timestamp)
        existing = grouped.get(day)
        if existing is None:
            grouped[day] = seg.model_copy(update={"timestamp": day})
            continue
        grouped[day] = existing.model_copy(update={
            "text": f"{existing.text} {seg.text}",
            "end_index": seg.end_index,
            "explicit": existing.explicit or seg.explicit,
        })
    return sorted(grouped.values(), key=lambda s: s.timestamp)


def validate_and_fix_dates(segments: List[SegmentedEntry],
                           reference_date: Optional[datetime] = None) -> List[SegmentedEntry]:
    ref = reference_date or datetime.now()
    fixed: List[SegmentedEntry] = []
    for seg in segments:
        if seg.timestamp > ref:
            when = roll_back_to_past(seg.timestamp, ref)
            seg = seg.model_copy(update={"timestamp": when, "date_string": format_date(when, ref)})
        fixed.append(seg)
    return fixed
