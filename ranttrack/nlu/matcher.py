from __future__ import annotations

from functools import lru_cache
from typing import Dict, List

from spacy.matcher import PhraseMatcher
from spacy.util import filter_spans

from ranttrack.nlu.lexicon import CategoryKind, DictionarySnapshot
from ranttrack.nlu.spans import NLP, Parsed, Span, span_from_tokens


class SpanMatcher:
    """
    One case-insensitive PhraseMatcher per dictionary kind.

    Matches only on token boundaries. Within a dictionary overlapping matches are reduced to the
    longest (earliest on ties); matches from different dictionaries may overlap freely.
    """

    def __init__(self, snapshot: DictionarySnapshot):
        self.version = snapshot.version
        self._matchers: Dict[CategoryKind, PhraseMatcher] = {}
        for kind in CategoryKind:
            table = snapshot.table(kind)
            matcher = PhraseMatcher(NLP.vocab, attr="LOWER")
            by_category: Dict[str, list] = {}
            surfaces = list(table.keys())
            for surface, pattern in zip(surfaces, NLP.tokenizer.pipe(surfaces)):
                if len(pattern):
                    by_category.setdefault(table[surface], []).append(pattern)
            for category, patterns in by_category.items():
                matcher.add(category, patterns)
            self._matchers[kind] = matcher

    def match_kind(self, parsed: Parsed, kind: CategoryKind) -> List[Span]:
        found = filter_spans(self._matchers[kind](parsed.doc, as_spans=True))
        out = [span_from_tokens(parsed, kind.value, s.label_, s.start, s.end) for s in found]
        out.sort(key=lambda s: s.start)
        return out

    def match(self, parsed: Parsed) -> Dict[CategoryKind, List[Span]]:
        return {kind: self.match_kind(parsed, kind) for kind in CategoryKind}


@lru_cache(maxsize=8)
def matcher_for(snapshot: DictionarySnapshot) -> SpanMatcher:
    # snapshots hash by identity, so every new snapshot compiles once
    return SpanMatcher(snapshot)
