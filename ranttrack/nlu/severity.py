"""
Severity resolution.

Tiers, first hit wins, nearest cue inside each tier:
  1. numeric score  ("7/10", "3 out of 10", "70%")
  2. severity keyword ("mild", "severe", "excruciating", ...)
  3. intensity modifier ("a bit", "really", "off the charts", ...)
  4. comparative ("worse", "getting better") shifting the symptom default one bucket
  5. per-symptom default
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ranttrack.nlu.lexicon import CategoryKind, DictionarySnapshot
from ranttrack.nlu.spans import Parsed, Span, covered_tokens, nearest_within, span_from_chars

LEVELS = ("mild", "moderate", "severe")

NUMERIC_WINDOW = 6
KEYWORD_WINDOW = 5
MODIFIER_WINDOW = 3
COMPARATIVE_WINDOW = 6

# "8/10", "3 out of 10"; not part of a date like 8/10/2024
SCORE_RE = re.compile(
    r"(?<![\d/.])(\d{1,3}(?:\.\d+)?)\s*(?:/|out\s+of)\s*(\d{1,3}(?:\.\d+)?)(?![\d/])", re.I
)
PERCENT_RE = re.compile(r"(?<![\d.])(\d{1,3}(?:\.\d+)?)\s*(?:%|percent\b)", re.I)
# pain scales people actually use; "24/7" and "3/4" are not scores
SCALE_DENOMINATORS = (5.0, 10.0, 100.0)


def bucket_for_score(score: float) -> str:
    """0-3 mild, 4-7 moderate, 8-10 severe (half-up rounding)."""
    rounded = int(min(max(score, 0.0), 10.0) + 0.5)
    if rounded <= 3:
        return "mild"
    if rounded <= 7:
        return "moderate"
    return "severe"


def numeric_cues(parsed: Parsed, claimed: Optional[Set[int]] = None) -> List[Span]:
    """Score cues in the text. Tokens in `claimed` already belong to another cue ("24/7")."""
    text = parsed.doc.text
    claimed = claimed or set()
    found: List[Tuple[int, int, float]] = []
    for m in SCORE_RE.finditer(text):
        num, den = float(m.group(1)), float(m.group(2))
        if den not in SCALE_DENOMINATORS:
            continue
        found.append((m.start(), m.end(), min(num / den * 10.0, 10.0)))
    for m in PERCENT_RE.finditer(text):
        found.append((m.start(), m.end(), min(float(m.group(1)) / 10.0, 10.0)))

    cues: List[Span] = []
    for start, end, score in found:
        s = span_from_chars(parsed, "numeric", bucket_for_score(score), start, end, payload=score)
        if s is None or claimed.intersection(range(s.start, s.end)):
            continue
        cues.append(s)
    cues.sort(key=lambda s: s.start)
    return cues


@dataclass
class SeverityCues:
    numeric: List[Span] = field(default_factory=list)
    keywords: List[Span] = field(default_factory=list)
    modifiers: List[Span] = field(default_factory=list)
    comparatives: List[Span] = field(default_factory=list)


def collect_cues(parsed: Parsed, spans: Dict[CategoryKind, List[Span]]) -> SeverityCues:
    return SeverityCues(
        numeric=numeric_cues(parsed, covered_tokens(
            spans.get(CategoryKind.TIME_OF_DAY, []) + spans.get(CategoryKind.PAIN_CONSISTENCY, [])
        )),
        keywords=spans.get(CategoryKind.SEVERITY_KEYWORD, []),
        modifiers=spans.get(CategoryKind.INTENSITY_MODIFIER, []),
        comparatives=spans.get(CategoryKind.COMPARATIVE, []),
    )


def default_severity(symptom: str, snapshot: DictionarySnapshot) -> str:
    return "severe" if symptom in snapshot.severe_by_default else "moderate"


def shift(level: str, direction: str) -> str:
    i = LEVELS.index(level)
    if direction == "worse":
        i = min(i + 1, len(LEVELS) - 1)
    elif direction == "better":
        i = max(i - 1, 0)
    return LEVELS[i]


def resolve_severity(span: Span, symptom: str, cues: SeverityCues,
                     snapshot: DictionarySnapshot) -> Tuple[str, Optional[str]]:
    """
    Returns (severity, cue tier). Tier is None when the per-symptom default applied.
    """
    for tier, candidates, window in (
        ("numeric", cues.numeric, NUMERIC_WINDOW),
        ("keyword", cues.keywords, KEYWORD_WINDOW),
        ("modifier", cues.modifiers, MODIFIER_WINDOW),
    ):
        cue = nearest_within(span, candidates, window)
        if cue is not None:
            return cue.category, tier

    base = default_severity(symptom, snapshot)
    cue = nearest_within(span, cues.comparatives, COMPARATIVE_WINDOW)
    if cue is not None:
        return shift(base, cue.category), "comparative"
    return base, None
