# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Aggregation helpers shared by the dashboard reports.

Pure, deterministic functions with no I/O. Empty inputs never raise;
they produce zero values so a student without data renders as an empty
card rather than an error.

Usage:
    from linguadash.domains.analytics.metrics import rounded_mean, current_streak

    average = rounded_mean([72, 85, 90])
    streak = current_streak(completion_times)
"""

import json
import logging
import math
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Sequence

from linguadash.utils.datetime import day_key, parse_day_key, utc_now

logger = logging.getLogger(__name__)

SCORE_BUCKETS: tuple[tuple[str, float], ...] = (
    ("0-20", 20),
    ("21-40", 40),
    ("41-60", 60),
    ("61-80", 80),
)
TOP_SCORE_BUCKET = "81-100"

TREND_IMPROVING = "improving"
TREND_DECLINING = "declining"
TREND_STABLE = "stable"

TREND_WINDOW = 5
TREND_THRESHOLD = 5


# =============================================================================
# Value coercion
# =============================================================================


def round_half_up(value: float, digits: int = 0) -> float:
    """Round to ``digits`` decimals with halves rounded towards +infinity.

    >>> round_half_up(2.5)
    3
    >>> round_half_up(-2.5)
    -2
    """
    if digits == 0:
        return int(math.floor(value + 0.5))
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def to_number(value: Any) -> float | None:
    """Coerce a stored score to a float.

    Several platform columns store percentages as text. Empty or
    non-numeric values return None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if math.isnan(number):
        return None
    return number


def first_number(*values: Any) -> float:
    """Return the first present, non-zero numeric value, else 0."""
    for value in values:
        number = to_number(value)
        if number:
            return number
    return 0.0


def parse_json_payload(value: Any) -> Any:
    """Parse an embedded JSON payload.

    Payload columns hold JSON text, or already-decoded dicts and lists.
    Malformed JSON is logged and treated as absent.
    """
    if value is None or isinstance(value, (dict, list)):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return json.loads(value)
    except ValueError:
        logger.warning("Ignoring malformed JSON payload")
        return None


# =============================================================================
# Basic statistics
# =============================================================================


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean, 0 for an empty input."""
    items = list(values)
    if not items:
        return 0
    return sum(items) / len(items)


def rounded_mean(values: Iterable[float]) -> int:
    """Mean rounded to the nearest integer, halves up."""
    return round_half_up(mean(values))


def variance(values: Sequence[float]) -> float:
    """Population variance, 0 for an empty input."""
    if not values:
        return 0
    average = mean(values)
    return sum((value - average) ** 2 for value in values) / len(values)


def score_distribution(values: Iterable[float]) -> dict[str, int]:
    """Count scores into the five 20-point buckets.

    A score goes to the first bucket whose upper bound it does not
    exceed; everything else, including values above 100, lands in
    ``81-100``. Counts always sum to the number of values.
    """
    distribution = {label: 0 for label, _ in SCORE_BUCKETS}
    distribution[TOP_SCORE_BUCKET] = 0
    for value in values:
        for label, upper in SCORE_BUCKETS:
            if value <= upper:
                distribution[label] += 1
                break
        else:
            distribution[TOP_SCORE_BUCKET] += 1
    return distribution


# =============================================================================
# Trends
# =============================================================================


def classify_trend(points: Iterable[tuple[datetime, float]]) -> str:
    """Classify a score series as improving, declining or stable.

    Compares the mean of the five most recent scores with the mean of
    the five before them.

    Args:
        points: (timestamp, score) pairs in any order.

    Returns:
        ``improving``, ``declining`` or ``stable``.
    """
    ordered = sorted(points, key=lambda point: point[0])
    if len(ordered) < 2:
        return TREND_STABLE

    count = len(ordered)
    recent = [score for _, score in ordered[-TREND_WINDOW:]]
    older = [score for _, score in ordered[max(0, count - 2 * TREND_WINDOW):count - TREND_WINDOW]]
    if not older:
        return TREND_STABLE

    delta = mean(recent) - mean(older)
    if delta > TREND_THRESHOLD:
        return TREND_IMPROVING
    if delta < -TREND_THRESHOLD:
        return TREND_DECLINING
    return TREND_STABLE


def compare_windows(
    recent: Sequence[float],
    older: Sequence[float],
    threshold: float = TREND_THRESHOLD,
) -> str:
    """Compare two score windows, returning ``up``, ``down`` or ``stable``."""
    if not recent or not older:
        return "stable"
    delta = mean(recent) - mean(older)
    if delta > threshold:
        return "up"
    if delta < -threshold:
        return "down"
    return "stable"


# =============================================================================
# Streaks
# =============================================================================


def day_keys(timestamps: Iterable[datetime]) -> list[str]:
    """Distinct UTC day keys, most recent first."""
    return sorted({day_key(ts) for ts in timestamps if ts is not None}, reverse=True)


def current_streak(timestamps: Iterable[datetime], today: date | None = None) -> int:
    """Count consecutive active days ending today or yesterday.

    Activity on today, yesterday and the day before gives 3; a gap of
    a day or more ends the run.
    """
    keys = day_keys(timestamps)
    if not keys:
        return 0

    today = today or utc_now().date()
    previous = parse_day_key(keys[0])
    if previous < today - timedelta(days=1):
        return 0

    streak = 1
    for key in keys[1:]:
        current = parse_day_key(key)
        if (previous - current).days != 1:
            break
        streak += 1
        previous = current
    return streak


def longest_streak(timestamps: Iterable[datetime]) -> int:
    """Longest run of consecutive active days."""
    keys = sorted(day_keys(timestamps))
    if not keys:
        return 0

    longest = run = 1
    for earlier, later in zip(keys, keys[1:]):
        if (parse_day_key(later) - parse_day_key(earlier)).days == 1:
            run += 1
            longest = max(longest, run)
        else:
            run = 1
    return longest


# =============================================================================
# Activity
# =============================================================================


def activity_level(recent: int, total: int) -> str:
    """Classify activity from recent (weekly) and total counts."""
    if recent >= 5 or total >= 30:
        return "high"
    if recent >= 2 or total >= 10:
        return "moderate"
    return "low"


def calendar_level(count: int, max_count: int) -> int:
    """Heat level 0-4 of a day in an activity calendar."""
    if count == 0:
        return 0
    if max_count <= 2:
        level = count
    elif max_count <= 5:
        level = math.ceil(count / max_count * 3)
    else:
        level = math.ceil(count / max_count * 4)
    return min(level, 4)


def efficiency_rating(avg_attempts: float) -> str:
    if avg_attempts <= 2:
        return "excellent"
    if avg_attempts <= 3.5:
        return "good"
    return "needs-improvement"


def attempt_bucket(attempts: int) -> str:
    if attempts <= 2:
        return "easy"
    if attempts <= 4:
        return "medium"
    return "hard"
