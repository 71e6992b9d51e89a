from collections.abc import Sequence
from datetime import date
from datetime import timedelta

from gitify.models import ContributionFilters
from gitify.models import ContributionLevel
from gitify.models import ContributionSnapshot
from gitify.models import Heatmap
from gitify.models import HeatmapCell
from gitify.models import HeatmapWeek
from gitify.models import RangeSelector
from gitify.services.analytics_service import resolve_date_range
from gitify.services.analytics_service import working_days
from gitify.services.levels import DEFAULT_LEVELS
from gitify.services.levels import LevelStrategy
from gitify.services.levels import level_index
from gitify.services.levels import resolve_levels


def sunday_weekday(day: date) -> int:
    """Weekday with Sunday as 0 and Saturday as 6."""

    return (day.weekday() + 1) % 7


def week_start(day: date) -> date:
    """Sunday on or before `day`."""

    return day - timedelta(days=sunday_weekday(day))


def build_heatmap(
    snapshot: ContributionSnapshot,
    selector: RangeSelector | None = None,
    filters: ContributionFilters | None = None,
    levels: Sequence[ContributionLevel] = DEFAULT_LEVELS,
    strategy: LevelStrategy = "manual",
    today: date | None = None,
) -> Heatmap:
    """Build Sunday-aligned week rows covering the selected range.

    Days dropped by `filters` and dates without data render with count 0.
    With a `percentile` or `quartile` strategy the levels are derived from
    the counts of the current range and filters instead of `levels`.
    """

    today = today or date.today()
    selector = selector or RangeSelector()
    filters = filters or ContributionFilters()

    start, end = resolve_date_range(selector, today)
    days = working_days(snapshot, selector, filters, today)
    active_levels = resolve_levels(
        strategy, (day.contribution_count for day in days), levels
    )

    if snapshot.is_empty:
        return Heatmap(start=start, end=end, levels=active_levels)

    counts = {day.date: day.contribution_count for day in days}

    weeks: list[HeatmapWeek] = []
    current = week_start(start)
    while current <= end:
        first_day = current
        cells = []
        for _ in range(7):
            count = counts.get(current, 0)
            cells.append(
                HeatmapCell(
                    date=current,
                    weekday=sunday_weekday(current),
                    count=count,
                    level=level_index(active_levels, count),
                    is_today=current == today,
                )
            )
            current += timedelta(days=1)
        weeks.append(HeatmapWeek(week_start=first_day, days=tuple(cells)))

    return Heatmap(start=start, end=end, levels=active_levels, weeks=tuple(weeks))
