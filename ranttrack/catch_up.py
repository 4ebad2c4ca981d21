from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from ranttrack.nlu.extractor import extract_symptoms
from ranttrack.nlu.lexicon import DictionarySnapshot, current_snapshot
from ranttrack.nlu.schema import ExtractionResult
from ranttrack.temporal.resolver import TemporalReferenceResolver
from ranttrack.temporal.segmentation import (
    SegmentedEntry,
    group_segments_by_date,
    segment_by_date,
    validate_and_fix_dates,
)


class DayEntry(BaseModel):
    segment: SegmentedEntry
    extraction: ExtractionResult


def extract_catch_up(text: str, reference_date: Optional[datetime] = None,
                     resolver: Optional[TemporalReferenceResolver] = None,
                     snapshot: Optional[DictionarySnapshot] = None) -> List[DayEntry]:
    """
    Multi-day narrative -> one extraction per calendar day, oldest first.
    Every day is extracted against the same dictionary snapshot.
    """
    ref = reference_date or datetime.now()
    snap = snapshot or current_snapshot()
    days = validate_and_fix_dates(group_segments_by_date(segment_by_date(text, ref, resolver)), ref)
    days.sort(key=lambda s: s.timestamp)
    return [DayEntry(segment=day, extraction=extract_symptoms(day.text, snap)) for day in days]
