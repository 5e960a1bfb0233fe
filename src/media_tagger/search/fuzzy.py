"""Fuzzy string scoring used to rank file and folder names."""

from __future__ import annotations


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance with unit insertion/deletion/substitution cost."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(
                current[j - 1] + 1,      # insertion
                previous[j] + 1,         # deletion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current
    return previous[-1]


def score(query: str, text: str) -> float:
    """Similarity between ``query`` and ``text`` in [0, 1].

    Rules are checked in priority order, first match wins:
        exact (case-insensitive)      -> 1.0
        containment                   -> 0.8 minus a length penalty up to 0.3
        prefix                        -> 0.7
        Levenshtein similarity > 0.4  -> similarity
        otherwise                     -> 0
    """
    if not query or not text:
        return 0.0

    query_lower = query.lower()
    text_lower = text.lower()

    if text_lower == query_lower:
        return 1.0

    if query_lower in text_lower:
        return 0.8 - (abs(len(text_lower) - len(query_lower)) / len(text_lower)) * 0.3

    # Containment above always catches this; kept for rule ordering.
    if text_lower.startswith(query_lower):
        return 0.7

    distance = levenshtein(query_lower, text_lower)
    max_length = max(len(query_lower), len(text_lower))
    similarity = 1 - distance / max_length
    return similarity if similarity > 0.4 else 0.0
