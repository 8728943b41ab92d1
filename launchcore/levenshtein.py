"""Prefix edit distance computations used by fuzzy matching."""

from __future__ import annotations

_UNREACHABLE = 1 << 30


class Levenshtein:
    """Banded Levenshtein distance from a prefix to the start of a string."""

    def prefix_edit_distance(self, prefix: str, string: str, k: int) -> int:
        """Return the edit distance of ``prefix`` to the best prefix of ``string``.

        The computation is limited to ``k`` errors: a result greater than
        ``k`` only means that the limit was exceeded.
        """
        if k < 0:
            raise ValueError("the error limit must not be negative")

        if k == 0:
            return 0 if string.startswith(prefix) else 1

        if len(prefix) > len(string) + k:
            return k + 1

        cols = min(len(prefix) + k + 1, len(string) + 1)
        previous = list(range(cols))
        distance = 0

        for row, prefix_char in enumerate(prefix, start=1):
            current = [_UNREACHABLE] * cols
            if row <= k:
                current[0] = row

            low = max(1, row - k)
            high = min(cols, row + k + 1)
            for col in range(low, high):
                substitution = previous[col - 1] + (prefix_char != string[col - 1])
                current[col] = min(substitution, previous[col] + 1, current[col - 1] + 1)

            distance = min(current[low:high])
            if distance > k:
                return distance
            previous = current

        return distance


def check_prefix_edit_distance(prefix: str, string: str, delta: int) -> bool:
    """Return True if ``prefix`` is within ``delta`` edits of a prefix of ``string``.

    Uses the full, unbanded dynamic programming table.
    """
    if delta < 0:
        raise ValueError("the error limit must not be negative")

    cols = min(len(prefix) + delta + 1, len(string) + 1)
    row = list(range(cols))
    for index, prefix_char in enumerate(prefix, start=1):
        new_row = [index]
        for col in range(1, cols):
            new_row.append(
                min(
                    row[col - 1] + (prefix_char != string[col - 1]),
                    new_row[col - 1] + 1,
                    row[col] + 1,
                )
            )
        row = new_row
    return any(value <= delta for value in row)