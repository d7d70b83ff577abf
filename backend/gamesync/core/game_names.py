"""Game Name Utilities — edition extraction and title normalization for catalog merging.

Invariants:
    - extract_edition() checks patterns in order; the first match wins
    - A name without a recognised edition returns (stripped name, None)
    - A match that would leave an empty base name is ignored
    - normalize_game_title() is idempotent: normalize(normalize(x)) == normalize(x)

Design Decisions:
    - Separator before the edition is optional: "The Sims 4 Premium Edition" and
      "The Sims 4 - Premium Edition" both resolve to base "The Sims 4"
    - More specific phrases precede their abbreviations ("Game of the Year Edition"
      before "GOTY") so the full phrase is consumed
"""

import re

_SEP = r"(?:\s*[-–—:]\s*|\s+)"

_EDITION_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(rf"{_SEP}Game of the Year Edition$", re.I), "Game of the Year Edition"),
    (re.compile(rf"{_SEP}GOTY(?:\s+Edition)?$", re.I), "Game of the Year Edition"),
    (re.compile(rf"{_SEP}Game of the Year$", re.I), "Game of the Year Edition"),
    (re.compile(rf"{_SEP}Gold(?:\s+Edition)?$", re.I), "Gold Edition"),
    (re.compile(rf"{_SEP}Complete(?:\s+Edition)?$", re.I), "Complete Edition"),
    (re.compile(rf"{_SEP}Definitive Edition$", re.I), "Definitive Edition"),
    (re.compile(rf"{_SEP}Ultimate Edition$", re.I), "Ultimate Edition"),
    (re.compile(rf"{_SEP}Enhanced Edition$", re.I), "Enhanced Edition"),
    (re.compile(rf"{_SEP}Deluxe Edition$", re.I), "Deluxe Edition"),
    (re.compile(rf"{_SEP}Premium Edition$", re.I), "Premium Edition"),
    (re.compile(rf"{_SEP}Collector'?s Edition$", re.I), "Collector's Edition"),
    (re.compile(rf"{_SEP}Limited Edition$", re.I), "Limited Edition"),
    (re.compile(rf"{_SEP}Special Edition$", re.I), "Special Edition"),
    (re.compile(rf"{_SEP}Anniversary Edition$", re.I), "Anniversary Edition"),
    (re.compile(rf"{_SEP}Director'?s Cut$", re.I), "Director's Cut"),
    (re.compile(rf"{_SEP}HD Remaster$", re.I), "HD Remaster"),
    (re.compile(rf"{_SEP}Remastered$", re.I), "Remastered"),
    (re.compile(rf"{_SEP}Remake$", re.I), "Remake"),
    (re.compile(rf"{_SEP}Standard Edition$", re.I), "Standard Edition"),
]

_TRADEMARKS = re.compile(r"[™®©]")
_APOSTROPHES = re.compile(r"['‘’`´]")
_PUNCTUATION = re.compile(r"[.,:;!?]")
_DASHES = re.compile(r"[-–—]")
_WHITESPACE = re.compile(r"\s+")


def extract_edition(game_name: str) -> tuple[str, str | None]:
    """Split a raw store name into (base name, edition)."""
    name = game_name.strip()
    for pattern, edition in _EDITION_PATTERNS:
        match = pattern.search(name)
        if not match:
            continue
        base_name = name[:match.start()].strip()
        if base_name:
            return base_name, edition
    return name, None


def normalize_game_title(title: str) -> str:
    """Matching key for titles: "The Sims™ 4" and "the sims 4" collapse together."""
    text = title.lower()
    text = _TRADEMARKS.sub("", text)
    text = _APOSTROPHES.sub("", text)
    text = _PUNCTUATION.sub("", text)
    text = _DASHES.sub(" ", text)
    text = text.replace("&", "and")
    return _WHITESPACE.sub(" ", text).strip()


def similarity_score(search: str, target: str) -> float:
    """Relevance of target for a search term, 0.0–1.0.

    Exact match scores 1.0; prefix and containment matches score above 0.6;
    plain edit-distance similarity is capped at 0.5 so it never outranks them.
    """
    a = normalize_game_title(search)
    b = normalize_game_title(target)
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    score = 0.0
    if b.startswith(a):
        score = max(score, 0.9 + (len(a) / len(b)) * 0.1)
    if a in b:
        score = max(score, 0.6 + (len(a) / len(b)) * 0.2)

    distance = _levenshtein(a, b)
    edit_score = 1 - distance / max(len(a), len(b))
    return max(score, min(edit_score, 0.5))


def _levenshtein(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            ))
        previous = current
    return previous[-1]
