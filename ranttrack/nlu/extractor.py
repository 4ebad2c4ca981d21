import re
from dataclasses import replace
from typing import List, Optional

from ranttrack.config import MAX_TEXT_CHARS
from ranttrack.observability.logs import log_event

from .assembler import assemble
from .attributes import absorb_attribute_lemmas, attach_attributes
from .context import confidence_caps, filter_by_context
from .lexicon import CategoryKind, DictionarySnapshot, current_snapshot
from .matcher import matcher_for
from .negation import drop_negated
from .schema import ExtractedSymptom, ExtractionResult
from .severity import collect_cues, resolve_severity
from .spans import covered_tokens, parse
from .spoons import extract_spoon_count

# the tokenizer re-scans a punctuation run once per character it peels off
PUNCT_RUN_RE = re.compile(r"[^\w\s]{4,}")


def _flatten_punctuation(text: str) -> str:
    """Keep the first mark of every long punctuation run and blank the rest. Length is kept."""
    return PUNCT_RUN_RE.sub(lambda m: m.group()[0] + " " * (len(m.group()) - 1), text)


def extract_symptoms(text: str, snapshot: Optional[DictionarySnapshot] = None) -> ExtractionResult:
    """
    Turn free text into symptom records.

    Pure with respect to `snapshot`: the same text and snapshot always yield the same records
    apart from their ids. One record per mention; repeated mentions are not merged.
    """
    if not isinstance(text, str):
        raise TypeError(f"text must be str, not {type(text).__name__}")
    if not text.strip():
        return ExtractionResult(text=text, symptoms=[])

    snap = snapshot or current_snapshot()
    body = text
    if len(body) > MAX_TEXT_CHARS:
        log_event("extract_truncated", length=len(text), limit=MAX_TEXT_CHARS)
        body = body[:MAX_TEXT_CHARS]

    parsed = parse(_flatten_punctuation(body))
    spans = matcher_for(snap).match(parsed)

    symptoms = spans[CategoryKind.SYMPTOM]
    # cue words inside matched phrases ("no energy", "not too bad") are not negations
    shielded = covered_tokens(symptoms) | covered_tokens(spans[CategoryKind.INTENSITY_MODIFIER])
    shielded |= covered_tokens(spans[CategoryKind.SEVERITY_KEYWORD])
    symptoms = drop_negated(parsed, symptoms, snap, shielded=shielded)
    symptoms = filter_by_context(parsed, symptoms, snap)
    caps = confidence_caps(parsed, symptoms, snap)
    symptoms = absorb_attribute_lemmas(symptoms, spans, snap)

    attrs = attach_attributes(parsed, symptoms, spans, snap)
    cues = collect_cues(parsed, spans)

    records: List[ExtractedSymptom] = []
    for span, attr in zip(symptoms, attrs):
        category = attr.refined_symptom or span.category
        severity, tier = resolve_severity(span, category, cues, snap)
        verbatim = replace(span, text=body[span.start_char:span.end_char])
        records.append(assemble(verbatim, attr, severity, explicit_severity=tier is not None,
                                confidence_cap=caps.get(span)))

    return ExtractionResult(text=text, symptoms=records, spoon_count=extract_spoon_count(body))
