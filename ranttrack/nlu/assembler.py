import uuid
from typing import Optional

from .attributes import SymptomAttributes
from .schema import ExtractedSymptom, MeasuredDuration, QualifiedDuration
from .spans import Span

_METHOD_BONUS = {"phrase": 0.2, "quick_checkin": 0.15, "lemma": 0.08}
_SEVERITY_BONUS = {"severe": 0.08, "moderate": 0.04, "mild": 0.02}


def score_confidence(method: str, matched: str, severity: Optional[str], explicit_severity: bool,
                     attrs: SymptomAttributes) -> float:
    """Heuristic 0-1 confidence: how specific the match is and how much context backs it."""
    score = 0.5 + _METHOD_BONUS.get(method, 0.0)

    words = len(matched.split())
    if words >= 4:
        score += 0.15
    elif words == 3:
        score += 0.12
    elif words == 2:
        score += 0.08
    elif method == "phrase":
        score += 0.03

    if explicit_severity and severity:
        score += _SEVERITY_BONUS.get(severity, 0.0)

    pd = attrs.pain_details
    if pd is not None:
        if pd.location:
            score += 0.15
        if len(pd.qualifiers) >= 2:
            score += 0.1
        elif pd.qualifiers:
            score += 0.06

    if attrs.trigger is not None:
        score += 0.05

    if isinstance(attrs.duration, MeasuredDuration):
        score += 0.08
    elif isinstance(attrs.duration, QualifiedDuration):
        score += 0.05
    elif attrs.duration is not None:
        score += 0.03

    if attrs.time_of_day:
        score += 0.05

    return round(min(1.0, max(0.0, score)), 2)


def assemble(span: Span, attrs: SymptomAttributes, severity: str,
             explicit_severity: bool, confidence_cap: Optional[float] = None) -> ExtractedSymptom:
    method = span.method
    confidence = score_confidence(method, span.text, severity, explicit_severity, attrs)
    if confidence_cap is not None:
        confidence = min(confidence, confidence_cap)
    return ExtractedSymptom(
        id=str(uuid.uuid4()),
        symptom=attrs.refined_symptom or span.category,
        matched=span.text,
        method=method,
        start=span.start_char,
        end=span.end_char,
        severity=severity,
        pain_details=attrs.pain_details,
        duration=attrs.duration,
        time_of_day=attrs.time_of_day,
        trigger=attrs.trigger,
        confidence=confidence,
    )
