"""
String matching primitives used by the symbol resolver.

Pure functions only; nothing here touches the catalog or the network.
"""

import math
import re
from typing import Iterable, Optional, Tuple

from ..data.models import AssetClass, SymbolEntry

# Prefix markers that force an asset class
PREFIX_MARKERS = {
    "$": AssetClass.EQUITY,
    "#": AssetClass.CRYPTO,
    "@": AssetClass.CRYPTO,
}

MARKET_SUFFIXES = (".IS",)

SCORE_EXACT = 100
SCORE_EXACT_CASE_INSENSITIVE = 98
SCORE_ALIAS = 95
SCORE_CONTAINS = 90
FUZZY_BASE_SCORE = 80
FUZZY_DISTANCE_PENALTY = 15
FUZZY_MIN_SCORE = 30
MIN_CONTAINS_LENGTH = 2


def parse_prefix(query: str) -> Tuple[str, Optional[AssetClass]]:
    """
    Split a leading class marker from the query.

    Returns:
        Tuple of (query without marker, forced asset class or None)
    """
    text = query.strip()
    if text and text[0] in PREFIX_MARKERS:
        return text[1:].strip(), PREFIX_MARKERS[text[0]]
    return text, None


def strip_market_suffix(symbol: str) -> str:
    """Remove a national market suffix such as ``.IS``."""
    upper = symbol.upper()
    for suffix in MARKET_SUFFIXES:
        if upper.endswith(suffix) and len(symbol) > len(suffix):
            return symbol[: -len(suffix)]
    return symbol


def has_market_suffix(symbol: str) -> bool:
    return strip_market_suffix(symbol) != symbol


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit cost insert, delete and substitute."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            )
        previous = current
    return previous[-1]


def max_distance_for_length(length: int) -> int:
    """Largest tolerated edit distance for a compared string of this length."""
    if length <= 2:
        return 0
    if length == 3:
        return 1
    if length <= 5:
        return 2
    return 3


def first_char_matches(a: str, b: str) -> bool:
    return bool(a) and bool(b) and a[0] == b[0]


def length_within_bounds(a: str, b: str) -> bool:
    """Length difference must not exceed half the longer string, rounded up."""
    longer = max(len(a), len(b))
    return abs(len(a) - len(b)) <= math.ceil(longer * 0.5)


def fuzzy_distance(query: str, target: str) -> Optional[int]:
    """
    Accepted edit distance between query and target, or None.

    Both strings are compared case-insensitively. The tolerated distance
    is taken from the target's length.
    """
    q = query.lower()
    t = target.lower()
    if not first_char_matches(q, t) or not length_within_bounds(q, t):
        return None
    distance = levenshtein(q, t)
    if distance > max_distance_for_length(len(t)):
        return None
    return distance


def fuzzy_score(distance: int, popularity: int = 100) -> int:
    """Score for an accepted fuzzy match, capped at the entry's popularity."""
    return min(max(0, FUZZY_BASE_SCORE - FUZZY_DISTANCE_PENALTY * distance), popularity)


def _match_targets(entry: SymbolEntry) -> Iterable[str]:
    yield strip_market_suffix(entry.symbol)
    if entry.display_name:
        yield entry.display_name
    for alias in entry.aliases:
        yield alias


def best_fuzzy_score(query: str, entry: SymbolEntry) -> Optional[int]:
    """
    Best fuzzy score for an entry over its stripped symbol, name and aliases.

    Returns None when nothing is within tolerance or the score is too low.
    """
    best: Optional[int] = None
    for target in _match_targets(entry):
        distance = fuzzy_distance(query, target)
        if distance is not None and (best is None or distance < best):
            best = distance
    if best is None:
        return None
    score = fuzzy_score(best, entry.popularity)
    if score <= FUZZY_MIN_SCORE:
        return None
    return score


def exact_symbol_score(query: str, entry: SymbolEntry) -> Optional[int]:
    """
    Exact symbol tier score.

    100 for a case-sensitive hit on the full or suffix-stripped symbol,
    98 for a case-insensitive hit, otherwise None.
    """
    stripped = strip_market_suffix(entry.symbol)
    if query == entry.symbol or query == stripped:
        return SCORE_EXACT
    folded = query.upper()
    if folded == entry.symbol or folded == stripped.upper():
        return SCORE_EXACT_CASE_INSENSITIVE
    return None


def alias_score(query: str, entry: SymbolEntry) -> Optional[int]:
    """
    Alias and display name tier score.

    95 for an exact alias, 90 when the query appears as whole words in the
    display name or an alias, otherwise None.
    """
    folded = query.casefold()
    if any(alias.casefold() == folded for alias in entry.aliases):
        return SCORE_ALIAS
    if len(folded) < MIN_CONTAINS_LENGTH:
        return None
    pattern = re.compile(r"(?<!\w)" + re.escape(folded) + r"(?!\w)")
    haystacks = [entry.display_name] + list(entry.aliases)
    if any(pattern.search(text.casefold()) for text in haystacks if text):
        return SCORE_CONTAINS
    return None
