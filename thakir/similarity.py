from __future__ import annotations


def levenshtein(a: str, b: str) -> int:
    """Edit distance over code points (one Arabic letter == one unit)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    # keep the shorter string on the inner loop
    if len(a) < len(b):
        a, b = b, a

    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            cur[j] = min(
                prev[j] + 1,  # deletion
                cur[j - 1] + 1,  # insertion
                prev[j - 1] + cost,  # substitution
            )
        prev = cur
    return prev[len(b)]


def phonetic_similarity(a: str, b: str) -> float:
    """1 - distance / longest length, in [0, 1].

    Both arguments are expected to be normalized already. Empty input is a
    degenerate non-match and scores 0.0.
    """
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    distance = levenshtein(a, b)
    return 1.0 - (distance / max(len(a), len(b)))
