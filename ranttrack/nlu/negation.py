from __future__ import annotations

from typing import Collection, List

from ranttrack.config import NEGATION_WINDOW
from ranttrack.nlu.lexicon import DictionarySnapshot
from ranttrack.nlu.spans import Parsed, Span


def is_negated(parsed: Parsed, span: Span, snapshot: DictionarySnapshot,
               window: int = NEGATION_WINDOW, shielded: Collection[int] = ()) -> bool:
    """
    Look back up to `window` tokens (same sentence only) for a negation cue.
    A contrastive conjunction ("but", "though") between cue and span re-affirms the span.
    Tokens in `shielded` belong to other matched phrases ("no energy", "not too bad") and
    never act as cues.
    """
    doc = parsed.doc
    i = span.start - 1
    seen = 0
    while i >= 0 and seen < window:
        if parsed.sent_ids[i] != span.sent:
            break
        tok = doc[i]
        if tok.is_space:
            i -= 1
            continue
        low = tok.lower_
        if low in snapshot.contrastive:
            return False
        if i not in shielded and low in snapshot.negation_cues:
            # "not not tired" still reads as negated
            return True
        seen += 1
        i -= 1
    return False


def drop_negated(parsed: Parsed, spans: List[Span], snapshot: DictionarySnapshot,
                 shielded: Collection[int] = (), window: int = NEGATION_WINDOW) -> List[Span]:
    return [s for s in spans if not is_negated(parsed, s, snapshot, window, shielded)]
