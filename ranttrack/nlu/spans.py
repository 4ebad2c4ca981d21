from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import spacy
from spacy.tokens import Doc


def build_nlp():
    nlp = spacy.blank("en")          # tokenizer only, no model download
    nlp.add_pipe("sentencizer")      # rule-based sentence boundaries
    return nlp

NLP = build_nlp()


@dataclass(frozen=True)
class Parsed:
    doc: Doc
    sent_ids: Sequence[int]          # token index -> sentence index


def parse(text: str) -> Parsed:
    doc = NLP(text)
    sent_ids = [0] * len(doc)
    for i, sent in enumerate(doc.sents):
        for t in range(sent.start, sent.end):
            sent_ids[t] = i
    return Parsed(doc=doc, sent_ids=sent_ids)


@dataclass(frozen=True)
class Span:
    kind: str                        # CategoryKind value, or a derived kind ("numeric", "duration", ...)
    category: str                    # canonical id
    text: str                        # verbatim slice of the source
    start: int                       # token offsets, end exclusive
    end: int
    start_char: int
    end_char: int
    sent: int
    payload: Any = field(default=None, compare=False)

    @property
    def method(self) -> str:
        return "phrase" if len(self.text.split()) > 1 else "lemma"

    @property
    def lower(self) -> str:
        return " ".join(self.text.lower().split())


def span_from_tokens(parsed: Parsed, kind: str, category: str, start: int, end: int,
                     payload: Any = None) -> Span:
    s = parsed.doc[start:end]
    return Span(kind=kind, category=category, text=s.text, start=start, end=end,
                start_char=s.start_char, end_char=s.end_char,
                sent=parsed.sent_ids[start], payload=payload)


def span_from_chars(parsed: Parsed, kind: str, category: str, start_char: int, end_char: int,
                    payload: Any = None) -> Optional[Span]:
    s = parsed.doc.char_span(start_char, end_char, alignment_mode="expand")
    if s is None or len(s) == 0:
        return None
    return span_from_tokens(parsed, kind, category, s.start, s.end, payload)


# ---- proximity ----

def token_distance(a: Span, b: Span) -> int:
    """Token steps between two spans; 0 when they overlap, 1 when adjacent."""
    if a.end <= b.start:
        return b.start - a.end + 1
    if b.end <= a.start:
        return a.start - b.end + 1
    return 0


def nearest_within(anchor: Span, candidates: Iterable[Span], window: int,
                   predicate: Optional[Callable[[Span], bool]] = None) -> Optional[Span]:
    """
    Nearest candidate in the same sentence within `window` tokens of `anchor`.
    Ties go to the earlier candidate.
    """
    best: Optional[Span] = None
    best_key = None
    for c in candidates:
        if c.sent != anchor.sent:
            continue
        if predicate is not None and not predicate(c):
            continue
        d = token_distance(anchor, c)
        if d > window:
            continue
        key = (d, c.start)
        if best_key is None or key < best_key:
            best, best_key = c, key
    return best


def claim_nearest(anchors: Sequence[Span], candidates: Iterable[Span], window: int) -> Dict[int, List[Span]]:
    """
    Give each candidate to its nearest anchor (closer, then earlier).
    Returns anchor index -> claimed candidates in text order.
    """
    index = {id(a): i for i, a in enumerate(anchors)}
    claims: Dict[int, List[Span]] = {i: [] for i in range(len(anchors))}
    for c in candidates:
        owner = nearest_within(c, anchors, window)
        if owner is not None:
            claims[index[id(owner)]].append(c)
    for lst in claims.values():
        lst.sort(key=lambda s: s.start)
    return claims


def covered_tokens(spans: Iterable[Span]) -> set:
    out = set()
    for s in spans:
        out.update(range(s.start, s.end))
    return out
