from __future__ import annotations

from typing import Final

# Verdict used by the scorer itself (transcribe-and-validate path).
STRICT_CORRECT_THRESHOLD: Final[float] = 0.8
# Alternate bar applied by the practice flow on top of the returned similarity.
LENIENT_ACCEPT_THRESHOLD: Final[float] = 0.7


def levenshtein_distance(a: str, b: str) -> int:
    """Return the minimum number of single-character edits turning `a` into `b`.

    The table is rebuilt on every call; nothing is shared between callers.
    """
    table = [[0] * (len(a) + 1) for _ in range(len(b) + 1)]
    for i in range(len(a) + 1):
        table[0][i] = i
    for j in range(len(b) + 1):
        table[j][0] = j

    for j in range(1, len(b) + 1):
        for i in range(1, len(a) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            table[j][i] = min(
                table[j][i - 1] + 1,
                table[j - 1][i] + 1,
                table[j - 1][i - 1] + cost,
            )
    return table[len(b)][len(a)]


def similarity(text1: str, text2: str) -> float:
    """Normalized closeness in [0, 1], relative to the longer string.

    Comparison is case-sensitive; lowercase both inputs first for a
    case-insensitive score. Two empty strings are a perfect match.
    """
    longer, shorter = (text1, text2) if len(text1) > len(text2) else (text2, text1)
    if len(longer) == 0:
        return 1.0
    distance = levenshtein_distance(longer, shorter)
    return (len(longer) - distance) / len(longer)
