"""Nearest-name correction for tool names the model gets slightly wrong."""
from __future__ import annotations

from typing import Iterable


def _normalize(name: str | None) -> str:
    return (name or "").lower().replace("_", "")


def edit_distance(s: str | None, t: str | None) -> int:
    """Levenshtein distance ignoring case and underscores.

    Unit cost for insert, delete and substitute. Uses two rolling rows sized
    on the shorter string.
    """
    source = _normalize(s)
    target = _normalize(t)

    if len(source) < len(target):
        source, target = target, source
    if not target:
        return len(source)

    prev_row = list(range(len(target) + 1))
    for i, source_char in enumerate(source, start=1):
        curr_row = [i] + [0] * len(target)
        for j, target_char in enumerate(target, start=1):
            cost = 0 if source_char == target_char else 1
            curr_row[j] = min(
                curr_row[j - 1] + 1,
                prev_row[j] + 1,
                prev_row[j - 1] + cost,
            )
        prev_row = curr_row

    return prev_row[-1]


def correct_tool_name(candidate: str, known: Iterable[str]) -> str:
    """Return candidate if known, else the closest known name.

    Ties go to the first name in iteration order. An empty known set leaves the
    candidate unchanged.
    """
    names = list(known)
    if not names or candidate in names:
        return candidate

    best_name = names[0]
    best_distance = edit_distance(candidate, best_name)
    for name in names[1:]:
        distance = edit_distance(candidate, name)
        if distance < best_distance:
            best_name, best_distance = name, distance

    return best_name
