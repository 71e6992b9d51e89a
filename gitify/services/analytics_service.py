from collections.abc import Iterable
from collections.abc import Iterator
from collections.abc import Sequence
from datetime import date
from datetime import timedelta
from decimal import Decimal
from decimal import ROUND_HALF_UP

from gitify.models import BestDay
from gitify.models import BestMonth
from gitify.models import ContributionDay
from gitify.models import ContributionFilters
from gitify.models import ContributionSnapshot
from gitify.models import RangeSelector
from gitify.models import StreakState
from gitify.models import StreakTier
from gitify.models import SummaryStats


ONE_DAY = timedelta(days=1)

STREAK_TIERS = (
    (365, StreakTier(level="Legendary", color="#ff6b35")),
    (100, StreakTier(level="Master", color="#ffa500")),
    (30, StreakTier(level="Expert", color="#00ffff")),
    (7, StreakTier(level="Active", color="#00ff00")),
    (0, StreakTier(level="Beginner", color="#8a2be2")),
)


def round_half_up(numerator: int | float, denominator: int | float = 1) -> float:
    """Divide and round to one decimal place, halves away from zero."""

    if not denominator:
        return 0.0
    value = Decimal(str(numerator)) / Decimal(str(denominator))
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def resolve_date_range(selector: RangeSelector, today: date) -> tuple[date, date]:
    """Return the inclusive `(start, end)` dates covered by `selector`."""

    year = selector.year or today.year

    if selector.kind == "last365":
        start, end = today - timedelta(days=365), today
    elif selector.kind == "month":
        start, end = today.replace(day=1), today
    elif selector.kind == "quarter":
        quarter_month = (today.month - 1) // 3 * 3 + 1
        start, end = date(today.year, quarter_month, 1), today
    elif selector.kind == "custom":
        start = selector.start or date(year, 1, 1)
        end = selector.end or today
    else:
        start, end = date(year, 1, 1), date(year, 12, 31)

    if start > end:
        raise ValueError("range start must be before or equal to range end")
    return start, end


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += ONE_DAY


def working_days(
    snapshot: ContributionSnapshot,
    selector: RangeSelector,
    filters: ContributionFilters,
    today: date,
) -> list[ContributionDay]:
    """Days of `snapshot` inside the selected range that pass `filters`.

    Missing dates between the first and last recorded day count as zero.
    Dates outside the recorded span are left out.
    """

    if snapshot.is_empty:
        return []

    start, end = resolve_date_range(selector, today)
    first = max(start, snapshot.days[0].date)
    last = min(end, snapshot.days[-1].date)

    counts = {day.date: day.contribution_count for day in snapshot.days}
    days = (
        ContributionDay(date=current, contribution_count=counts.get(current, 0))
        for current in iter_dates(first, last)
    )
    return [day for day in days if filters.accepts(day)]


def current_streak(days: Iterable[ContributionDay], today: date) -> int:
    """Consecutive active days ending today, or yesterday if today is empty."""

    counts = {day.date: day.contribution_count for day in days}
    cursor = today if counts.get(today, 0) > 0 else today - ONE_DAY

    streak = 0
    while counts.get(cursor, 0) > 0:
        streak += 1
        cursor -= ONE_DAY
    return streak


def longest_streak(days: Iterable[ContributionDay]) -> int:
    longest = 0
    running = 0
    previous: date | None = None

    for day in sorted(days, key=lambda item: item.date):
        if day.contribution_count > 0:
            consecutive = previous is not None and day.date - previous == ONE_DAY
            running = running + 1 if consecutive else 1
            longest = max(longest, running)
        else:
            running = 0
        previous = day.date

    return longest


def compute_contribution_stats(
    snapshot: ContributionSnapshot,
    selector: RangeSelector | None = None,
    filters: ContributionFilters | None = None,
    today: date | None = None,
) -> SummaryStats:
    """Summary numbers for the selected range and filters."""

    today = today or date.today()
    days = working_days(
        snapshot, selector or RangeSelector(), filters or ContributionFilters(), today
    )
    if not days:
        return SummaryStats()

    total = sum(day.contribution_count for day in days)
    return SummaryStats(
        total=total,
        current_streak=current_streak(days, today),
        longest_streak=longest_streak(days),
        avg_daily=round_half_up(total, len(days)),
        best_day=max(day.contribution_count for day in days),
        active_days=sum(1 for day in days if day.contribution_count > 0),
        week_avg=round_half_up(total * 7, len(days)),
    )


def streak_tier(streak: int) -> StreakTier:
    for threshold, tier in STREAK_TIERS:
        if streak >= threshold:
            return tier
    return STREAK_TIERS[-1][1]


def _best_month(days: Sequence[ContributionDay]) -> BestMonth:
    monthly: dict[tuple[int, int], int] = {}
    for day in days:
        key = (day.date.year, day.date.month)
        monthly[key] = monthly.get(key, 0) + day.contribution_count

    best = BestMonth(label="No data", count=0)
    for (year, month), count in sorted(monthly.items()):
        if count > best.count:
            best = BestMonth(label=date(year, month, 1).strftime("%B %Y"), count=count)
    return best


def compute_streaks(
    snapshot: ContributionSnapshot, today: date | None = None
) -> StreakState:
    """Streak and activity summary over the whole snapshot."""

    today = today or date.today()
    days = snapshot.days
    if not days:
        return StreakState(streak_tier=streak_tier(0), longest_streak_tier=streak_tier(0))

    current = current_streak(days, today)
    longest = longest_streak(days)

    best_day = BestDay(date=None, count=0)
    for day in days:
        if day.contribution_count > best_day.count:
            best_day = BestDay(date=day.date, count=day.contribution_count)

    this_year = [day for day in days if day.date.year == today.year]
    this_year_total = sum(day.contribution_count for day in this_year)
    elapsed = (today - date(today.year, 1, 1)).days + 1
    counted_days = min(elapsed, len(this_year))

    today_count = next(
        (day.contribution_count for day in days if day.date == today), 0
    )
    if today_count > 0:
        status = "active"
    elif current > 0:
        status = "maintained"
    else:
        status = "broken"

    return StreakState(
        current_streak=current,
        longest_streak=longest,
        active_days=sum(1 for day in days if day.contribution_count > 0),
        best_day=best_day,
        best_month=_best_month(days),
        streak_status=status,
        total_contributions=sum(day.contribution_count for day in days),
        this_year_total=this_year_total,
        average_per_day=round_half_up(this_year_total, counted_days),
        today_contributions=today_count,
        days_tracked=len(days),
        streak_tier=streak_tier(current),
        longest_streak_tier=streak_tier(longest),
    )


def available_years(snapshot: ContributionSnapshot) -> list[int]:
    return sorted({day.date.year for day in snapshot.days}, reverse=True)
