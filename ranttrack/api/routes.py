from __future__ import annotations

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from ranttrack.catch_up import DayEntry, extract_catch_up
from ranttrack.nlu.extractor import extract_symptoms
from ranttrack.nlu.lexicon import STORE, DuplicateNameError, normalize_word
from ranttrack.nlu.schema import ExtractionResult
from ranttrack.observability.logs import log_event
from ranttrack.observability.metrics import (
    record_dictionary_update, record_error, record_request, record_segments, record_symptoms,
    timer_observe_ms, timer_start,
)
from ranttrack.temporal.segmentation import (
    SegmentedEntry, group_segments_by_date, segment_by_date, validate_and_fix_dates,
)

router = APIRouter(tags=["api"])


class ExtractIn(BaseModel):
    text: str


class SegmentIn(BaseModel):
    text: str
    reference_date: Optional[datetime] = None
    group: bool = True


class CatchUpIn(BaseModel):
    text: str
    reference_date: Optional[datetime] = None


class CustomSymptomIn(BaseModel):
    word: str = Field(min_length=1)
    symptom: str = Field(min_length=1)


class CustomSymptomOut(BaseModel):
    version: int
    word: str
    symptom: str


class CustomSymptomsOut(BaseModel):
    version: int
    entries: Dict[str, str] = Field(default_factory=dict)


@router.post("/extract", response_model=ExtractionResult)
def extract(payload: ExtractIn):
    t0 = timer_start()
    request_id = str(uuid.uuid4())  # define before try so except can log it

    try:
        # Do not log raw user text
        log_event("extract_request", request_id=request_id, chars=len(payload.text))
        result = extract_symptoms(payload.text)

        elapsed_ms = timer_observe_ms(t0)
        record_symptoms(s.method for s in result.symptoms)
        record_request("extract", "ok")
        log_event(
            "extract_response",
            request_id=request_id,
            elapsed_ms=round(elapsed_ms, 2),
            symptoms=[s.symptom for s in result.symptoms],
            has_spoons=result.spoon_count is not None,
        )
        return result

    except Exception as e:
        timer_observe_ms(t0)
        record_error(type(e).__name__)
        record_request("extract", "error")
        log_event("extract_error", request_id=request_id, error_type=type(e).__name__)
        raise


@router.post("/segment", response_model=List[SegmentedEntry])
def segment(payload: SegmentIn):
    t0 = timer_start()
    request_id = str(uuid.uuid4())

    try:
        log_event("segment_request", request_id=request_id, chars=len(payload.text), group=payload.group)
        ref = payload.reference_date or datetime.now()
        segments = segment_by_date(payload.text, ref)
        if payload.group:
            segments = validate_and_fix_dates(group_segments_by_date(segments), ref)

        elapsed_ms = timer_observe_ms(t0)
        record_segments(s.explicit for s in segments)
        record_request("segment", "ok")
        log_event(
            "segment_response",
            request_id=request_id,
            elapsed_ms=round(elapsed_ms, 2),
            segments=len(segments),
            explicit=sum(1 for s in segments if s.explicit),
        )
        return segments

    except Exception as e:
        timer_observe_ms(t0)
        record_error(type(e).__name__)
        record_request("segment", "error")
        log_event("segment_error", request_id=request_id, error_type=type(e).__name__)
        raise


@router.post("/catch-up", response_model=List[DayEntry])
def catch_up(payload: CatchUpIn):
    t0 = timer_start()
    request_id = str(uuid.uuid4())

    try:
        log_event("catch_up_request", request_id=request_id, chars=len(payload.text))
        days = extract_catch_up(payload.text, payload.reference_date)

        elapsed_ms = timer_observe_ms(t0)
        record_segments(d.segment.explicit for d in days)
        record_symptoms(s.method for d in days for s in d.extraction.symptoms)
        record_request("catch_up", "ok")
        log_event(
            "catch_up_response",
            request_id=request_id,
            elapsed_ms=round(elapsed_ms, 2),
            days=[d.segment.timestamp.date().isoformat() for d in days],
            symptoms=sum(len(d.extraction.symptoms) for d in days),
        )
        return days

    except Exception as e:
        timer_observe_ms(t0)
        record_error(type(e).__name__)
        record_request("catch_up", "error")
        log_event("catch_up_error", request_id=request_id, error_type=type(e).__name__)
        raise


@router.get("/custom-symptoms", response_model=CustomSymptomsOut)
def list_custom_symptoms():
    snap = STORE.snapshot
    return CustomSymptomsOut(version=snap.version, entries=dict(snap.custom_symptoms))


@router.post("/custom-symptoms", response_model=CustomSymptomOut, status_code=201)
def create_custom_symptom(payload: CustomSymptomIn):
    try:
        snap = STORE.add_custom_symptom(payload.word, payload.symptom)
    except DuplicateNameError as e:
        record_dictionary_update("duplicate")
        record_request("custom_symptoms", "conflict")
        raise HTTPException(
            status_code=409,
            detail=f"symptom '{e.symptom}' is already used by '{e.existing_word}'",
        )
    except ValueError as e:
        record_dictionary_update("invalid")
        record_request("custom_symptoms", "invalid")
        raise HTTPException(status_code=422, detail=str(e))

    record_dictionary_update("added")
    record_request("custom_symptoms", "ok")
    word = normalize_word(payload.word)
    return CustomSymptomOut(version=snap.version, word=word, symptom=snap.custom_symptoms[word])


@router.delete("/custom-symptoms/{word}", status_code=204)
def delete_custom_symptom(word: str):
    try:
        STORE.remove_custom_symptom(word)
    except KeyError:
        record_request("custom_symptoms", "not_found")
        raise HTTPException(status_code=404, detail="unknown custom word")

    record_dictionary_update("removed")
    record_request("custom_symptoms", "ok")
    return Response(status_code=204)
