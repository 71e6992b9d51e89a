"""Heatmap intensity levels.

A level list is an ordered tuple of `ContributionLevel` buckets that together
cover every count from 0 upwards exactly once. Lists are never edited in
place: every change produces a new, validated tuple.
"""

from collections.abc import Iterable
from collections.abc import Sequence
from typing import Literal

from pydantic import ValidationError

from gitify.models import ContributionLevel


LevelStrategy = Literal["manual", "percentile", "quartile"]

DEFAULT_LEVELS: tuple[ContributionLevel, ...] = (
    ContributionLevel(min=0, max=0, color="#ebedf0", label="No contributions"),
    ContributionLevel(min=1, max=3, color="#9be9a8", label="Low activity"),
    ContributionLevel(min=4, max=6, color="#40c463", label="Medium activity"),
    ContributionLevel(min=7, max=10, color="#30a14e", label="High activity"),
    ContributionLevel(min=11, max=None, color="#216e39", label="Very high activity"),
)

AUTO_PALETTE: tuple[tuple[str, str], ...] = (
    ("#ebedf0", "No contributions"),
    ("#9be9a8", "Low activity"),
    ("#40c463", "Medium activity"),
    ("#30a14e", "High activity"),
    ("#216e39", "Very high activity"),
    ("#0e4429", "Peak activity"),
)

PERCENTILES = (0.25, 0.5, 0.75, 0.9)
QUARTILES = (0.25, 0.5, 0.75)


class InvalidLevelsError(ValueError):
    """Raised when a level list does not partition [0, infinity)."""


def validate_levels(levels: Iterable[ContributionLevel]) -> tuple[ContributionLevel, ...]:
    """Return `levels` as a tuple if they partition [0, infinity).

    Raises:
        InvalidLevelsError: On gaps, overlaps, a bounded last level or an
            unbounded level before the last one.
    """

    levels = tuple(levels)
    if not levels:
        raise InvalidLevelsError("at least one level is required")
    if levels[0].min != 0:
        raise InvalidLevelsError("the first level must start at 0")

    for index, level in enumerate(levels[:-1]):
        if level.max is None:
            raise InvalidLevelsError(f"level {index} is unbounded but not last")
        following = levels[index + 1]
        if following.min != level.max + 1:
            raise InvalidLevelsError(
                f"level {index + 1} must start at {level.max + 1}, not {following.min}"
            )

    if levels[-1].max is not None:
        raise InvalidLevelsError("the last level must be unbounded")

    return levels


def replace_level(
    levels: Sequence[ContributionLevel], index: int, **changes: object
) -> tuple[ContributionLevel, ...]:
    """Return a new level list with `levels[index]` updated by `changes`."""

    if not 0 <= index < len(levels):
        raise IndexError("level index out of range")

    updated = list(levels)
    try:
        updated[index] = ContributionLevel.model_validate(
            {**levels[index].model_dump(), **changes}
        )
    except ValidationError as exc:
        raise InvalidLevelsError(str(exc)) from exc
    return validate_levels(updated)


def level_index(levels: Sequence[ContributionLevel], count: int) -> int:
    """Index of the first level containing `count`, or -1 if none does."""

    for index, level in enumerate(levels):
        if level.contains(count):
            return index
    return -1


def levels_from_thresholds(thresholds: Iterable[int]) -> tuple[ContributionLevel, ...]:
    """Build levels `[0,0], [1,t1], [t1+1,t2], ..., [tn+1, inf)`.

    Thresholds that would produce an empty bucket are skipped.
    """

    bounds: list[tuple[int, int | None]] = [(0, 0)]
    upper = 0
    for threshold in thresholds:
        if threshold <= upper:
            continue
        bounds.append((upper + 1, threshold))
        upper = threshold
    bounds.append((upper + 1, None))

    levels = []
    for index, (low, high) in enumerate(bounds):
        color, label = AUTO_PALETTE[min(index, len(AUTO_PALETTE) - 1)]
        levels.append(ContributionLevel(min=low, max=high, color=color, label=label))
    return validate_levels(levels)


def percentile_value(sorted_counts: Sequence[int], fraction: float) -> int:
    index = min(int(len(sorted_counts) * fraction), len(sorted_counts) - 1)
    return sorted_counts[index]


def percentile_levels(counts: Iterable[int]) -> tuple[ContributionLevel, ...]:
    """Levels split at the 25th/50th/75th/90th percentile of nonzero counts."""

    nonzero = sorted(count for count in counts if count > 0)
    if not nonzero:
        return levels_from_thresholds(())
    return levels_from_thresholds(percentile_value(nonzero, q) for q in PERCENTILES)


def quartile_levels(counts: Iterable[int]) -> tuple[ContributionLevel, ...]:
    """Levels split at 25%/50%/75% of the maximum count."""

    peak = max(counts, default=0)
    return levels_from_thresholds(int(peak * q) for q in QUARTILES)


def resolve_levels(
    strategy: LevelStrategy,
    counts: Iterable[int],
    manual: Sequence[ContributionLevel] = DEFAULT_LEVELS,
) -> tuple[ContributionLevel, ...]:
    if strategy == "percentile":
        return percentile_levels(counts)
    if strategy == "quartile":
        return quartile_levels(counts)
    return validate_levels(manual)
