import re
from typing import Optional

from .schema import SpoonCount

SPOONS_PER_DAY = 12  # energy_level maps a 12-spoon day onto 0-10

ZERO_RE = re.compile(
    r"\b(?:ran\s+out\s+of|out\s+of|no|zero|negative)\s+spoons?\b|\bspoon\s+deficit\b", re.I
)
STARTED_RE = re.compile(r"\b(?:started|began|woke(?:\s+up)?)\s+(?:the\s+day\s+)?with\s+(\d+(?:\.\d+)?)\s+spoons?\b", re.I)
USED_RE = re.compile(r"\b(?:used|spent|cost|took|burned)\s+(?:up\s+)?(\d+(?:\.\d+)?)(\s+spoons?\b)?", re.I)
CURRENT_RES = (
    re.compile(r"\b(?:have|got|only|just)\s+(\d+(?:\.\d+)?)\s+spoons?\b", re.I),
    re.compile(r"\b(\d+(?:\.\d+)?)\s+spoons?\s+(?:left|remaining|today)\b", re.I),
)
BARE_RE = re.compile(r"\b(\d+(?:\.\d+)?)\s+spoons?\b", re.I)


def _energy(current: float) -> float:
    return min(10.0, max(0.0, round(current * 10.0 / SPOONS_PER_DAY, 1)))


def extract_spoon_count(text: str) -> Optional[SpoonCount]:
    if not text or "spoon" not in text.lower():
        return None

    if ZERO_RE.search(text):
        return SpoonCount(current=0.0, energy_level=0.0)

    consumed = set()
    started = used = current = None

    m = STARTED_RE.search(text)
    if m:
        started = float(m.group(1))
        consumed.add(m.start(1))

    for m in USED_RE.finditer(text):
        # "used 3" without the word spoons only counts once a budget is known
        if m.group(2) or started is not None:
            used = float(m.group(1))
            consumed.add(m.start(1))
            break

    for rx in CURRENT_RES:
        m = rx.search(text)
        if m and m.start(1) not in consumed:
            current = float(m.group(1))
            consumed.add(m.start(1))
            break

    if current is None and started is None and used is None:
        m = BARE_RE.search(text)
        if m:
            current = float(m.group(1))

    if current is None and started is not None and used is not None:
        current = max(0.0, started - used)

    if current is None and started is None and used is None:
        return None
    return SpoonCount(
        current=current,
        used=used,
        started=started,
        energy_level=_energy(current) if current is not None else None,
    )
