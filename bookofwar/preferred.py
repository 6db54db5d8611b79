"""
Preferred cost values.

A curated round-number sequence used for human-friendly cost suggestions
and as the step size of the full-roster hill climber. The base entries are
mostly divisors of 60; beyond the table the sequence grows by 5.
"""

PREFERRED_VALUES = (1, 2, 3, 4, 5, 6, 8, 10, 12, 15, 20)
HIGHER_INC = 5


def preferred_value(idx: int) -> int:
    """Get the idx-th preferred value (possibly past the base table)."""
    assert idx >= 0
    last = len(PREFERRED_VALUES) - 1
    if idx <= last:
        return PREFERRED_VALUES[idx]
    return PREFERRED_VALUES[last] + HIGHER_INC * (idx - last)


def _index_at_least(num: int) -> int:
    idx = 0
    while preferred_value(idx) < num:
        idx += 1
    return idx


def _closest_index(num: int) -> int:
    high_idx = _index_at_least(num)
    high_val = preferred_value(high_idx)
    if high_val == num or high_idx == 0:
        return high_idx
    low_idx = high_idx - 1
    low_val = preferred_value(low_idx)
    # Exact midpoints round up
    return low_idx if 2 * (num - low_val) < high_val - low_val else high_idx


def closest(num: int) -> int:
    """Preferred value closest to num."""
    return preferred_value(_closest_index(num))


def inc(num: int) -> int:
    """Next higher preferred value."""
    idx = _closest_index(num)
    val = preferred_value(idx)
    return val if num < val else preferred_value(idx + 1)


def dec(num: int) -> int:
    """Next lower preferred value (never below the first entry)."""
    idx = _closest_index(num)
    val = preferred_value(idx)
    if num > val:
        return val
    return preferred_value(max(idx - 1, 0))
