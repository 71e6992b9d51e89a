import pytest

from gitify.models import ContributionLevel
from gitify.services.levels import DEFAULT_LEVELS
from gitify.services.levels import InvalidLevelsError
from gitify.services.levels import level_index
from gitify.services.levels import percentile_levels
from gitify.services.levels import quartile_levels
from gitify.services.levels import replace_level
from gitify.services.levels import resolve_levels
from gitify.services.levels import validate_levels


def bounds(levels) -> list[tuple[int, int | None]]:
    return [(level.min, level.max) for level in levels]


def assert_partitions(levels, upto: int = 200) -> None:
    for count in range(upto):
        assert sum(1 for level in levels if level.contains(count)) == 1


def test_default_levels_partition_counts() -> None:
    """Default levels cover every count exactly once."""

    assert_partitions(validate_levels(DEFAULT_LEVELS))
    assert level_index(DEFAULT_LEVELS, 0) == 0
    assert level_index(DEFAULT_LEVELS, 3) == 1
    assert level_index(DEFAULT_LEVELS, 11) == 4
    assert level_index(DEFAULT_LEVELS, 10_000) == 4


def test_percentile_levels_use_sorted_index_thresholds() -> None:
    """Percentile thresholds come from sorted positive counts."""

    levels = percentile_levels([0, 0, 9, 2, 1, 5, 2])

    # p25 = 2, p50 = 2, p75 = 5, p90 = 9
    assert bounds(levels) == [(0, 0), (1, 2), (3, 5), (6, 9), (10, None)]
    assert_partitions(levels)


def test_quartile_levels_split_the_maximum() -> None:
    """Quartile thresholds split the maximum count."""

    levels = quartile_levels([0, 3, 9, 12])

    assert bounds(levels) == [(0, 0), (1, 3), (4, 6), (7, 9), (10, None)]
    assert_partitions(levels)


def test_auto_levels_without_activity() -> None:
    """Without activity automatic levels split only zero from the rest."""

    assert bounds(percentile_levels([0, 0])) == [(0, 0), (1, None)]
    assert bounds(quartile_levels([])) == [(0, 0), (1, None)]


def test_resolve_levels_manual_uses_given_levels() -> None:
    """Manual strategy returns the given levels."""

    assert resolve_levels("manual", [1, 2, 3]) == DEFAULT_LEVELS
    assert bounds(resolve_levels("quartile", [8])) == [
        (0, 0),
        (1, 2),
        (3, 4),
        (5, 6),
        (7, None),
    ]


def test_replace_level_returns_new_list() -> None:
    """Replacing a level returns a new list."""

    widened = replace_level(DEFAULT_LEVELS, 4, label="Legendary")

    assert widened[4].label == "Legendary"
    assert DEFAULT_LEVELS[4].label == "Very high activity"


def test_replace_level_rejects_gap() -> None:
    """Edits that leave a gap between levels are rejected."""

    with pytest.raises(InvalidLevelsError):
        replace_level(DEFAULT_LEVELS, 1, max=2)


def test_replace_level_rejects_inverted_bounds() -> None:
    """Edits with min above max are rejected."""

    with pytest.raises(InvalidLevelsError):
        replace_level(DEFAULT_LEVELS, 1, min=5, max=3)


@pytest.mark.parametrize(
    "levels",
    [
        [],
        [ContributionLevel(min=1, max=None, color="#fff", label="x")],
        [
            ContributionLevel(min=0, max=None, color="#fff", label="x"),
            ContributionLevel(min=1, max=None, color="#fff", label="y"),
        ],
        [
            ContributionLevel(min=0, max=2, color="#fff", label="x"),
            ContributionLevel(min=2, max=None, color="#fff", label="y"),
        ],
        [ContributionLevel(min=0, max=5, color="#fff", label="x")],
    ],
)
def test_validate_levels_rejects_broken_partitions(levels) -> None:
    """Overlapping or incomplete level sets are rejected."""

    with pytest.raises(InvalidLevelsError):
        validate_levels(levels)
