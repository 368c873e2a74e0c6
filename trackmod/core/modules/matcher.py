from __future__ import annotations

"""
File-name similarity used to pick one entry point out of several candidates.
Deterministic + standard library only.
"""

from typing import Optional, Sequence, Tuple


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance (insert/delete/substitute, each costs 1). Case-sensitive."""
    a = str(a or "")
    b = str(b or "")
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            cur[j] = min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + cost)
        prev = cur
    return prev[-1]


def best_match_with_distance(target: str, candidates: Sequence[str]) -> Optional[Tuple[str, Optional[int]]]:
    """
    Returns (candidate, distance) or None for no candidates.
    A lone candidate is returned as-is with distance None (nothing is computed).
    Ties keep the earliest candidate in input order.
    """
    items = list(candidates or [])
    if not items:
        return None
    if len(items) == 1:
        return items[0], None

    best: Optional[str] = None
    best_d: Optional[int] = None
    for cand in items:
        d = edit_distance(target, cand)
        if best_d is None or d < best_d:
            best, best_d = cand, d
    return best, best_d  # type: ignore[return-value]


def best_match(target: str, candidates: Sequence[str]) -> Optional[str]:
    hit = best_match_with_distance(target, candidates)
    return hit[0] if hit is not None else None
