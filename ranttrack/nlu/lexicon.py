"""
Dictionary store: versioned, read-only snapshots of the rule tables.

A snapshot is built once from the YAML lexicon and never mutated. Adding a custom symptom word
produces a new snapshot (copy-on-write) that the store swaps in atomically, so extraction calls
already holding the previous snapshot keep seeing a consistent view.
"""
from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional

import yaml

from ranttrack.config import LEXICON_PATH
from ranttrack.observability.logs import log_event

DEFAULT_LEXICON = Path(__file__).parent / "data" / "lexicon.yaml"


class CategoryKind(str, Enum):
    SYMPTOM = "symptom"
    PAIN_QUALIFIER = "pain_qualifier"
    BODY_LOCATION = "body_location"
    RADIATION = "radiation"
    DISTRIBUTION = "distribution"
    PAIN_CONSISTENCY = "pain_consistency"
    PAIN_ONSET = "pain_onset"
    ACTIVITY = "activity"
    TRIGGER_TIMEFRAME = "trigger_timeframe"
    SEVERITY_KEYWORD = "severity_keyword"
    INTENSITY_MODIFIER = "intensity_modifier"
    COMPARATIVE = "comparative"
    DURATION_QUALIFIER = "duration_qualifier"
    ONGOING = "ongoing"
    TIME_OF_DAY = "time_of_day"


class DuplicateNameError(ValueError):
    """A custom symptom name is already registered under another word."""

    def __init__(self, symptom: str, existing_word: str):
        super().__init__(f"custom symptom '{symptom}' already exists (word '{existing_word}')")
        self.symptom = symptom
        self.existing_word = existing_word


@dataclass(frozen=True)
class ContextRule:
    window: int
    invalidating: FrozenSet[str]
    supporting: FrozenSet[str] = frozenset()
    min_confidence: float = 0.5      # cap when neither kind of neighbour is present


def normalize_word(word: str) -> str:
    return " ".join(str(word).lower().split())


def normalize_symptom(symptom: str) -> str:
    s = re.sub(r"[\s\-]+", "_", str(symptom).strip().lower())
    return re.sub(r"[^a-z0-9_]", "", s).strip("_")


def _freeze(d: Dict[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(d))


@dataclass(frozen=True, eq=False)
class DictionarySnapshot:
    version: int
    tables: Mapping[CategoryKind, Mapping[str, str]]
    negation_cues: FrozenSet[str] = frozenset()
    contrastive: FrozenSet[str] = frozenset()
    severe_by_default: FrozenSet[str] = frozenset()
    pain_categories: FrozenSet[str] = frozenset()
    pain_refinements: Mapping[str, str] = field(default_factory=lambda: _freeze({}))
    context_rules: Mapping[str, ContextRule] = field(default_factory=lambda: MappingProxyType({}))
    custom_symptoms: Mapping[str, str] = field(default_factory=lambda: _freeze({}))

    @cached_property
    def _symptom_table(self) -> Mapping[str, str]:
        merged = dict(self.tables.get(CategoryKind.SYMPTOM, {}))
        merged.update(self.custom_symptoms)  # custom words win over built-ins
        return MappingProxyType(merged)

    @cached_property
    def builtin_categories(self) -> FrozenSet[str]:
        return frozenset(self.tables.get(CategoryKind.SYMPTOM, {}).values())

    def table(self, kind: CategoryKind) -> Mapping[str, str]:
        if kind is CategoryKind.SYMPTOM:
            return self._symptom_table
        return self.tables.get(kind, MappingProxyType({}))

    def custom_symptom_names(self) -> Dict[str, str]:
        """Custom (non built-in) symptom name -> the word it is registered under."""
        names: Dict[str, str] = {}
        for word, symptom in self.custom_symptoms.items():
            if symptom not in self.builtin_categories:
                names.setdefault(symptom, word)
        return names

    def with_custom_symptom(self, word: str, symptom: str) -> "DictionarySnapshot":
        w = normalize_word(word)
        s = normalize_symptom(symptom)
        if not w:
            raise ValueError("word must not be empty")
        if not s:
            raise ValueError("symptom must not be empty")

        existing = self.custom_symptom_names().get(s)
        if existing is not None and existing != w:
            raise DuplicateNameError(s, existing)

        custom = dict(self.custom_symptoms)
        custom[w] = s
        return replace(self, version=self.version + 1, custom_symptoms=_freeze(custom))

    def without_custom_symptom(self, word: str) -> "DictionarySnapshot":
        w = normalize_word(word)
        if w not in self.custom_symptoms:
            raise KeyError(w)
        custom = {k: v for k, v in self.custom_symptoms.items() if k != w}
        return replace(self, version=self.version + 1, custom_symptoms=_freeze(custom))


def _invert(raw: Mapping[str, list], kind: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for canonical, forms in (raw or {}).items():
        if not isinstance(forms, list):
            raise ValueError(f"lexicon table '{kind}': '{canonical}' must list surface forms")
        for form in forms:
            key = normalize_word(form)
            if key:
                out[key] = str(canonical)  # later entry wins
    return out


def build_snapshot(data: Mapping, version: Optional[int] = None) -> DictionarySnapshot:
    raw_tables = data.get("tables") or {}
    unknown = set(raw_tables) - {k.value for k in CategoryKind}
    if unknown:
        raise ValueError(f"unknown lexicon tables: {sorted(unknown)}")

    tables = {
        kind: _freeze(_invert(raw_tables.get(kind.value), kind.value))
        for kind in CategoryKind
    }

    rules = data.get("rules") or {}
    refinements: Dict[str, str] = {}
    for symptom, locations in (rules.get("pain_refinements") or {}).items():
        for loc in locations:
            refinements[str(loc)] = str(symptom)

    word_sets = rules.get("context_words") or {}
    context_rules: Dict[str, ContextRule] = {}
    for word, rule in (rules.get("context_rules") or {}).items():
        supporting = list(rule.get("supporting", []))
        for name in rule.get("supporting_sets", []):
            if name not in word_sets:
                raise ValueError(f"context rule '{word}': unknown word set '{name}'")
            supporting.extend(word_sets[name])
        context_rules[normalize_word(word)] = ContextRule(
            window=int(rule.get("window", 4)),
            invalidating=frozenset(normalize_word(t) for t in rule.get("invalidating", [])),
            supporting=frozenset(normalize_word(t) for t in supporting),
            min_confidence=float(rule.get("min_confidence", 0.5)),
        )

    return DictionarySnapshot(
        version=int(version if version is not None else data.get("version", 1)),
        tables=MappingProxyType(tables),
        negation_cues=frozenset(normalize_word(c) for c in rules.get("negation_cues", [])),
        contrastive=frozenset(normalize_word(c) for c in rules.get("contrastive_conjunctions", [])),
        severe_by_default=frozenset(rules.get("severe_by_default", [])),
        pain_categories=frozenset(rules.get("pain_categories", [])),
        pain_refinements=_freeze(refinements),
        context_rules=MappingProxyType(context_rules),
    )


def load_lexicon(path: Optional[str] = None) -> DictionarySnapshot:
    p = Path(path) if path else DEFAULT_LEXICON
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    snap = build_snapshot(data)
    log_event(
        "lexicon_loaded",
        version=snap.version,
        symptom_forms=len(snap.table(CategoryKind.SYMPTOM)),
        tables=len(snap.tables),
    )
    return snap


class DictionaryStore:
    """Holds the current snapshot. Reads are lock-free; writers swap under a lock."""

    def __init__(self, snapshot: DictionarySnapshot):
        self._snapshot = snapshot
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> DictionarySnapshot:
        return self._snapshot

    def add_custom_symptom(self, word: str, symptom: str) -> DictionarySnapshot:
        with self._lock:
            try:
                new = self._snapshot.with_custom_symptom(word, symptom)
            except DuplicateNameError as e:
                log_event("custom_symptom_rejected", symptom=e.symptom, reason="duplicate_name")
                raise
            self._snapshot = new
        log_event("custom_symptom_added", version=new.version, symptom=new.custom_symptoms[normalize_word(word)])
        return new

    def remove_custom_symptom(self, word: str) -> DictionarySnapshot:
        with self._lock:
            new = self._snapshot.without_custom_symptom(word)
            self._snapshot = new
        log_event("custom_symptom_removed", version=new.version)
        return new

    def custom_entries(self) -> Dict[str, str]:
        return dict(self._snapshot.custom_symptoms)


STORE = DictionaryStore(load_lexicon(LEXICON_PATH))


def current_snapshot() -> DictionarySnapshot:
    return STORE.snapshot


def add_custom_symptom(word: str, symptom: str) -> None:
    STORE.add_custom_symptom(word, symptom)


def remove_custom_symptom(word: str) -> None:
    STORE.remove_custom_symptom(word)
