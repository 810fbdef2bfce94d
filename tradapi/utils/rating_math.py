from typing import Iterable, Tuple


def rolling_average(current_avg: float, current_count: int, new_rating: float) -> Tuple[int, float]:
    """
    Fold one new rating into a running mean.

    Works from the total (avg * count) rather than an incremental delta so the
    result stays the plain arithmetic mean of every rating seen so far.
    """
    current_avg = current_avg or 0.0
    current_count = current_count or 0
    new_count = current_count + 1
    new_total = (current_avg * current_count) + new_rating
    return new_count, new_total / new_count


def weighted_mean(pairs: Iterable[Tuple[float, int]]) -> Tuple[float, int]:
    """Mean of (average, count) pairs weighted by count; (0.0, 0) when nothing was counted"""
    total = 0.0
    count = 0
    for avg, n in pairs:
        if not n:
            continue
        total += (avg or 0.0) * n
        count += n
    if count == 0:
        return 0.0, 0
    return total / count, count
