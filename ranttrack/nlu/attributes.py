from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from ranttrack.nlu.lexicon import CategoryKind, DictionarySnapshot
from ranttrack.nlu.schema import (
    ActivityTrigger, MeasuredDuration, OngoingDuration, PainDetails, QualifiedDuration,
    SinceDuration,
)
from ranttrack.nlu.spans import (
    Parsed, Span, claim_nearest, covered_tokens, nearest_within, span_from_chars,
    span_from_tokens,
)

QUALIFIER_WINDOW = 6
LOCATION_WINDOW = 8
PAIN_PATTERN_WINDOW = 8     # radiation / distribution / consistency / onset
DURATION_WINDOW = 8
TIME_OF_DAY_WINDOW = 8
TRIGGER_WINDOW = 6
MAX_ACTIVITY_TOKENS = 4

WHOLE_BODY = "whole_body"

# ---- duration ----

_NUMBER_WORDS = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
    "a couple": 2, "a couple of": 2, "couple": 2, "couple of": 2, "a few": 3, "few": 3,
}
_NUM = (r"(\d+(?:\.\d+)?|a\s+couple(?:\s+of)?|couple(?:\s+of)?|a\s+few|few|an?|one|two|three|"
        r"four|five|six|seven|eight|nine|ten|eleven|twelve)")
_UNIT = r"(minutes?|mins?|hours?|hrs?|days?|weeks?|wks?)"
_GAP = r"(?:(?<=\d)\s*|\s+)"   # digits may touch the unit ("48hours"), words may not
_UNITS = {
    "minute": "minutes", "minutes": "minutes", "min": "minutes", "mins": "minutes",
    "hour": "hours", "hours": "hours", "hr": "hours", "hrs": "hours", "h": "hours",
    "day": "days", "days": "days", "d": "days",
    "week": "weeks", "weeks": "weeks", "wk": "weeks", "wks": "weeks",
}

MEASURED_RES = (
    re.compile(rf"\b(?:for|lasted|lasting|over)\s+(?:the\s+)?(?:(?:past|last)\s+)?{_NUM}{_GAP}{_UNIT}\b", re.I),
    re.compile(rf"\b(?:past|last)\s+{_NUM}{_GAP}{_UNIT}\b(?!\s+ago)", re.I),
    re.compile(rf"\b{_NUM}{_GAP}{_UNIT}\s+(?:of|now|straight|running|in\s+a\s+row)\b", re.I),
    re.compile(r"\b(\d+(?:\.\d+)?)\s*(h|d)\s+of\b", re.I),
)
SINCE_RE = re.compile(
    r"\bsince\s+(yesterday|last\s+night|last\s+week|last\s+weekend|the\s+weekend|"
    r"(?:this|the)\s+(?:morning|afternoon|evening)|tonight|breakfast|lunch|dinner|"
    r"i\s+woke\s+up|waking\s+up|(?:last\s+)?(?:monday|tuesday|wednesday|thursday|friday|"
    r"saturday|sunday))\b",
    re.I,
)
_PART_OF_DAY = ("night", "morning", "afternoon", "evening")


def _number(raw: str) -> Optional[float]:
    key = " ".join(raw.lower().split())
    if key in _NUMBER_WORDS:
        return float(_NUMBER_WORDS[key])
    try:
        return float(key)
    except ValueError:
        return None


def duration_candidates(parsed: Parsed, spans: Dict[CategoryKind, List[Span]]) -> List[Span]:
    text = parsed.doc.text
    found: List[Span] = []
    taken: List[tuple] = []

    def _free(a: int, b: int) -> bool:
        return all(b <= s or a >= e for s, e in taken)

    for rx in MEASURED_RES:
        for m in rx.finditer(text):
            value = _number(m.group(1))
            unit = _UNITS.get(m.group(2).lower())
            if value is None or unit is None or not _free(m.start(), m.end()):
                continue
            s = span_from_chars(parsed, "duration", "measured", m.start(), m.end(),
                                payload=MeasuredDuration(value=value, unit=unit))
            if s is not None:
                found.append(s)
                taken.append((m.start(), m.end()))

    for m in SINCE_RE.finditer(text):
        if not _free(m.start(), m.end()):
            continue
        anchor = " ".join(m.group(1).lower().split())
        s = span_from_chars(parsed, "duration", "since", m.start(), m.end(),
                            payload=SinceDuration(since=anchor))
        if s is not None:
            found.append(s)
            taken.append((m.start(), m.end()))

    for q in spans.get(CategoryKind.DURATION_QUALIFIER, []):
        unit = "hours" if any(p in q.lower for p in _PART_OF_DAY) else "days"
        found.append(span_from_tokens(parsed, "duration", "qualified", q.start, q.end,
                                      payload=QualifiedDuration(qualifier=q.category, unit=unit)))

    for o in spans.get(CategoryKind.ONGOING, []):
        found.append(span_from_tokens(parsed, "duration", "ongoing", o.start, o.end,
                                      payload=OngoingDuration()))

    found.sort(key=lambda s: s.start)
    return found


# ---- activity trigger ----

_SKIP = {
    "the", "a", "an", "my", "your", "our", "his", "her", "their", "some", "that", "this",
    "all", "too", "much", "long", "of", "those", "these", "just", "really", "so",
}
_STOP = {
    "and", "or", "but", "so", "then", "i", "i'm", "im", "me", "it", "which", "because", "when",
    "with", "to", "now", "today", "yesterday", "still", "day", "days", "night", "morning",
    "afternoon", "evening", "week", "weekend", "hour", "hours", "minute", "minutes", "while",
    "was", "is", "were", "had", "have", "felt", "feel", "got", "in", "on", "at", "for", "by",
}


def trigger_candidates(parsed: Parsed, spans: Dict[CategoryKind, List[Span]],
                       symptom_spans: List[Span]) -> List[Span]:
    """
    A timeframe cue followed by an activity phrase. The activity ends at the first dictionary
    activity in the run; otherwise the run (up to four words) is kept as free text.
    """
    doc = parsed.doc
    blocked = covered_tokens(symptom_spans) | covered_tokens(spans.get(CategoryKind.BODY_LOCATION, []))
    blocked |= covered_tokens(spans.get(CategoryKind.TRIGGER_TIMEFRAME, []))
    activities = {a.start: a for a in spans.get(CategoryKind.ACTIVITY, [])}

    out: List[Span] = []
    for cue in spans.get(CategoryKind.TRIGGER_TIMEFRAME, []):
        i = cue.end
        while i < len(doc) and parsed.sent_ids[i] == cue.sent and doc[i].lower_ in _SKIP:
            i += 1
        first = i
        end = None
        category = None
        while i < len(doc) and i - first < MAX_ACTIVITY_TOKENS and parsed.sent_ids[i] == cue.sent:
            tok = doc[i]
            if i in activities:
                act = activities[i]
                end, category = act.end, act.category
                break
            if (i in blocked or tok.is_punct or tok.is_space or tok.like_num
                    or not tok.is_alpha or tok.lower_ in _STOP):
                break
            i += 1
            end = i
        if end is None or end <= first:
            continue
        activity = doc[first:end].text.lower()
        trig = ActivityTrigger(activity=" ".join(activity.split()), timeframe=cue.category,
                               category=category)
        out.append(span_from_tokens(parsed, "trigger", cue.category, cue.start, end, payload=trig))
    return out


# ---- assembly of per-symptom attributes ----

@dataclass
class SymptomAttributes:
    pain_details: Optional[PainDetails] = None
    duration: Optional[object] = None
    time_of_day: Optional[str] = None
    trigger: Optional[ActivityTrigger] = None
    refined_symptom: Optional[str] = None


def _is_attribute_like(span: Span, qualifier_tokens: set, location_tokens: set) -> Optional[int]:
    toks = set(range(span.start, span.end))
    if toks & qualifier_tokens:
        return QUALIFIER_WINDOW
    if toks & location_tokens:
        return LOCATION_WINDOW
    return None


def absorb_attribute_lemmas(symptoms: List[Span], spans: Dict[CategoryKind, List[Span]],
                            snapshot: DictionarySnapshot) -> List[Span]:
    """
    Drop pain-category lemmas that are really attributes of a nearby pain match:
    "burning pain" is one pain with qualifier burning, "head pain" one pain located at the head.
    """
    pain = snapshot.pain_categories
    qualifier_tokens = covered_tokens(spans.get(CategoryKind.PAIN_QUALIFIER, []))
    location_tokens = covered_tokens(spans.get(CategoryKind.BODY_LOCATION, []))

    windows = {}
    for s in symptoms:
        if s.method == "lemma" and s.category in pain:
            w = _is_attribute_like(s, qualifier_tokens, location_tokens)
            if w is not None:
                windows[id(s)] = w

    anchors = [s for s in symptoms if s.category in pain and id(s) not in windows]
    kept: List[Span] = []
    for s in symptoms:
        w = windows.get(id(s))
        if w is not None and nearest_within(s, anchors, w) is not None:
            continue
        kept.append(s)
    return kept


def attach_attributes(parsed: Parsed, symptoms: List[Span], spans: Dict[CategoryKind, List[Span]],
                      snapshot: DictionarySnapshot) -> List[SymptomAttributes]:
    """
    Every candidate is claimed by its nearest symptom; each slot then takes the nearest of its
    claimed candidates and is set at most once. Qualifiers accumulate.
    """
    attrs = [SymptomAttributes() for _ in symptoms]
    if not symptoms:
        return attrs

    # pain details only attach to pain-category matches
    pain_idx = [i for i, s in enumerate(symptoms) if s.category in snapshot.pain_categories]
    pain_anchors = [symptoms[i] for i in pain_idx]
    if pain_anchors:
        q_claims = claim_nearest(pain_anchors, spans.get(CategoryKind.PAIN_QUALIFIER, []), QUALIFIER_WINDOW)
        loc_claims = claim_nearest(pain_anchors, spans.get(CategoryKind.BODY_LOCATION, []), LOCATION_WINDOW)
        pattern_claims = {
            kind: claim_nearest(pain_anchors, spans.get(kind, []), PAIN_PATTERN_WINDOW)
            for kind in (CategoryKind.RADIATION, CategoryKind.DISTRIBUTION,
                         CategoryKind.PAIN_CONSISTENCY, CategoryKind.PAIN_ONSET)
        }
        for j, i in enumerate(pain_idx):
            anchor = symptoms[i]
            qualifiers: List[str] = []
            for q in q_claims[j]:
                if q.category not in qualifiers:
                    qualifiers.append(q.category)

            location = None
            specific = nearest_within(anchor, [l for l in loc_claims[j] if l.category != WHOLE_BODY], LOCATION_WINDOW)
            loc = specific or nearest_within(anchor, loc_claims[j], LOCATION_WINDOW)
            if loc is not None:
                location = loc.category

            picks = {}
            for kind, claims in pattern_claims.items():
                hit = nearest_within(anchor, claims[j], PAIN_PATTERN_WINDOW)
                picks[kind] = hit.category if hit is not None else None

            attrs[i].pain_details = PainDetails(
                qualifiers=qualifiers,
                location=location,
                radiation=picks[CategoryKind.RADIATION],
                distribution=picks[CategoryKind.DISTRIBUTION],
                consistency=picks[CategoryKind.PAIN_CONSISTENCY],
                onset=picks[CategoryKind.PAIN_ONSET],
            )
            if anchor.category == "pain" and location in snapshot.pain_refinements:
                attrs[i].refined_symptom = snapshot.pain_refinements[location]

    d_claims = claim_nearest(symptoms, duration_candidates(parsed, spans), DURATION_WINDOW)
    t_claims = claim_nearest(symptoms, spans.get(CategoryKind.TIME_OF_DAY, []), TIME_OF_DAY_WINDOW)
    g_claims = claim_nearest(symptoms, trigger_candidates(parsed, spans, symptoms), TRIGGER_WINDOW)

    for i, anchor in enumerate(symptoms):
        d = nearest_within(anchor, d_claims[i], DURATION_WINDOW)
        if d is not None:
            attrs[i].duration = d.payload
        t = nearest_within(anchor, t_claims[i], TIME_OF_DAY_WINDOW)
        if t is not None:
            attrs[i].time_of_day = t.category
        g = nearest_within(anchor, g_claims[i], TRIGGER_WINDOW)
        if g is not None:
            attrs[i].trigger = g.payload
    return attrs
