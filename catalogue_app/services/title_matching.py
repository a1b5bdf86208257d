"""
Title and year comparison between an imported spreadsheet row and a TMDB record.

The confidence score is a heuristic 0-100 similarity estimate:

- title: exact match +60, leading-segment containment +40, otherwise
  40 x (shared tokens / max token count)
- year: same year +40, one year apart +20, otherwise nothing

Missing or unparseable years carry no signal rather than a penalty.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable

EXACT_TITLE_SCORE = 60
CONTAINED_TITLE_SCORE = 40
TOKEN_OVERLAP_MAX_SCORE = 40
SAME_YEAR_SCORE = 40
ADJACENT_YEAR_SCORE = 20
MAX_CONFIDENCE = 100

MAX_KEYWORDS = 200

_YEAR_PATTERN = re.compile(r"^(\d{4})(?!\d)")
_LEADING_ARTICLE = re.compile(r"^(the|a|an)\s+", re.IGNORECASE)
_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")


def extract_year(value: str | None) -> int | None:
    """Return the 4-digit year a date-like string starts with ("2003", "2003-11-07")."""
    if not value:
        return None
    match = _YEAR_PATTERN.match(value.strip())
    if not match:
        return None
    return int(match.group(1))


def _is_leading_segment(shorter: str, longer: str) -> bool:
    if not longer.startswith(shorter):
        return False
    if len(longer) == len(shorter):
        return True
    return not longer[len(shorter)].isalnum()


def title_score(row_title: str | None, provider_title: str | None) -> float:
    a = (row_title or "").strip().lower()
    b = (provider_title or "").strip().lower()
    if not a or not b:
        return 0.0

    if a == b:
        return float(EXACT_TITLE_SCORE)

    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    if _is_leading_segment(shorter, longer):
        return float(CONTAINED_TITLE_SCORE)

    tokens_a = a.split()
    tokens_b = b.split()
    shared = set(tokens_a) & set(tokens_b)
    return TOKEN_OVERLAP_MAX_SCORE * len(shared) / max(len(tokens_a), len(tokens_b))


def year_score(row_year: int | None, provider_year: int | None) -> int:
    if row_year is None or provider_year is None:
        return 0
    difference = abs(row_year - provider_year)
    if difference == 0:
        return SAME_YEAR_SCORE
    if difference == 1:
        return ADJACENT_YEAR_SCORE
    return 0


def calculate_confidence(
    row_title: str | None,
    row_release: str | None,
    provider_title: str | None,
    provider_release_date: str | None,
) -> int:
    """Combined title and year confidence, an int in [0, 100]."""
    total = title_score(row_title, provider_title) + year_score(
        extract_year(row_release), extract_year(provider_release_date)
    )
    # Half-up rounding; round() would send 2.5 to 2.
    return max(0, min(int(math.floor(total + 0.5)), MAX_CONFIDENCE))


def generate_sort_title(title: str) -> str:
    """Drop one leading article: "The Grinch" sorts as "Grinch"."""
    normalized = title.strip()
    return _LEADING_ARTICLE.sub("", normalized, count=1).strip()


def normalize_title(title: str | None) -> str:
    lowered = (title or "").lower()
    lowered = _LEADING_ARTICLE.sub("", lowered, count=1)
    return _NON_ALPHANUMERIC.sub(" ", lowered).strip()


def make_keywords(
    title: str,
    original_title: str,
    release_date: str,
    genres: Iterable[str],
    cast: Iterable[str],
) -> list[str]:
    """Search tokens for a catalogue entry, both whole phrases and single words."""
    tokens: dict[str, None] = {}

    def push(text: str | None) -> None:
        normalized = normalize_title(text)
        if not normalized:
            return
        tokens[normalized] = None
        for word in normalized.split():
            tokens[word] = None

    push(title)
    push(original_title)
    year = extract_year(release_date)
    if year is not None:
        tokens[str(year)] = None
    for genre in genres:
        push(genre)
    for name in list(cast)[:5]:
        push(name)

    return list(tokens)[:MAX_KEYWORDS]
