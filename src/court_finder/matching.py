"""Loose venue-name matching for the command line."""

from __future__ import annotations

from typing import Optional, Sequence

from .models import Venue

ACCEPT_SCORE = 0.6
SUGGEST_SCORE = 0.5

_IGNORED = set("-_（）()【】『』《》［］、，。．・／/|︱：:")


def normalise_name(text: str) -> str:
    """Lower-case and strip whitespace and common punctuation."""
    return "".join(ch for ch in text.strip().lower() if not ch.isspace() and ch not in _IGNORED)


def is_subsequence(target: str, query: str) -> bool:
    remaining = iter(target)
    return all(ch in remaining for ch in query)


def match_score(target: str, query: str) -> float:
    """Score two normalised names; 1.0 is identical, 0.0 no match."""
    if not target or not query:
        return 0.0
    if target == query:
        return 1.0
    ratio = len(query) / len(target)
    if query in target:
        return min(0.95, ratio + 0.3)
    if is_subsequence(target, query):
        return min(0.85, ratio + 0.2)
    return 0.0


def find_best_match(venues: Sequence[Venue], query: Optional[str]) -> Optional[Venue]:
    """Exact name, then substring, then the best normalised score above the floor."""
    if not query or not query.strip() or not venues:
        return None
    lowered = query.lower()
    for venue in venues:
        if venue.name.lower() == lowered:
            return venue
    for venue in venues:
        if lowered in venue.name.lower():
            return venue

    normalised = normalise_name(query)
    best: Optional[Venue] = None
    best_score = 0.0
    for venue in venues:
        score = match_score(normalise_name(venue.name), normalised)
        if score > best_score:
            best, best_score = venue, score
    return best if best_score >= ACCEPT_SCORE else None


def suggest(venues: Sequence[Venue], query: str) -> list[Venue]:
    """Venues scoring at least the suggestion floor, best first."""
    normalised = normalise_name(query or "")
    scored = [(match_score(normalise_name(venue.name), normalised), venue) for venue in venues]
    ranked = sorted(
        ((score, venue) for score, venue in scored if score >= SUGGEST_SCORE),
        key=lambda pair: (-pair[0], pair[1].name),
    )
    return [venue for _, venue in ranked]
