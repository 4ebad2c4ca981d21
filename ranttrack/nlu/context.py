from __future__ import annotations

from typing import Dict, List

from ranttrack.nlu.lexicon import DictionarySnapshot
from ranttrack.nlu.spans import Parsed, Span

VALID = "valid"
INVALID = "invalid"
UNCERTAIN = "uncertain"


def context_verdict(parsed: Parsed, span: Span, snapshot: DictionarySnapshot) -> str:
    """
    Judge an ambiguous single word by its neighbours in the same sentence.

    invalid: a non-medical neighbour and no supporting one ("server crashed").
    uncertain: neither kind of neighbour.
    valid: anything else, including words with no rule.
    """
    if span.method != "lemma":
        return VALID
    rule = snapshot.context_rules.get(span.lower)
    if rule is None:
        return VALID

    doc = parsed.doc
    lo = max(0, span.start - rule.window)
    hi = min(len(doc), span.end + rule.window)
    supported = invalidated = False
    for i in range(lo, hi):
        if span.start <= i < span.end or parsed.sent_ids[i] != span.sent:
            continue
        word = doc[i].lower_
        supported = supported or word in rule.supporting
        invalidated = invalidated or word in rule.invalidating

    if invalidated and not supported:
        return INVALID
    if supported:
        return VALID
    return UNCERTAIN


def passes_context(parsed: Parsed, span: Span, snapshot: DictionarySnapshot) -> bool:
    return context_verdict(parsed, span, snapshot) != INVALID


def filter_by_context(parsed: Parsed, spans: List[Span], snapshot: DictionarySnapshot) -> List[Span]:
    return [s for s in spans if passes_context(parsed, s, snapshot)]


def confidence_caps(parsed: Parsed, spans: List[Span], snapshot: DictionarySnapshot) -> Dict[Span, float]:
    """Upper confidence bound for lemmas whose context neither supports nor rules them out."""
    caps: Dict[Span, float] = {}
    for s in spans:
        if context_verdict(parsed, s, snapshot) == UNCERTAIN:
            caps[s] = snapshot.context_rules[s.lower].min_confidence
    return caps
