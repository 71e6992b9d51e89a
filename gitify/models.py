from datetime import date
from datetime import datetime
from typing import Any
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic import model_validator


ALL_WEEKDAYS = frozenset(range(7))

RangeKind = Literal["year", "last365", "month", "quarter", "custom"]
StreakStatus = Literal["active", "maintained", "broken"]
Winner = Literal["user1", "user2", "tie"]


class FrozenModel(BaseModel):
    """Immutable value object.

    Attribute assignment is rejected. Mapping fields hold plain dicts so they
    serialize as JSON objects; they are never mutated after construction, and
    changed values are derived with `model_copy(update=...)`.
    """

    model_config = ConfigDict(frozen=True)


class ContributionDay(FrozenModel):
    """Contribution count recorded for a single calendar day."""

    date: date
    contribution_count: int = Field(ge=0)


class ContributionSnapshot(FrozenModel):
    """Date-ordered contribution days plus per-year totals from one fetch."""

    days: tuple[ContributionDay, ...] = ()
    totals_by_year: dict[int, int] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.days

    @classmethod
    def empty(cls) -> "ContributionSnapshot":
        return cls()


class ProfileSnapshot(FrozenModel):
    """Everything fetched for one username in one aggregation.

    Raw GitHub payloads are kept as plain mappings; only the contribution
    branch is normalized.
    """

    username: str
    user: dict[str, Any]
    repositories: tuple[dict[str, Any], ...] = ()
    events: tuple[dict[str, Any], ...] = ()
    organizations: tuple[dict[str, Any], ...] = ()
    gists: tuple[dict[str, Any], ...] = ()
    starred_repositories: tuple[dict[str, Any], ...] = ()
    contributions: ContributionSnapshot = Field(default_factory=ContributionSnapshot)
    repo_languages: dict[str, dict[str, int]] = Field(default_factory=dict)


class ErrorInfo(FrozenModel):
    kind: str
    message: str
    status_code: int | None = None


class AggregationResult(FrozenModel):
    """Outcome of one aggregation: a snapshot or the primary lookup error."""

    username: str
    snapshot: ProfileSnapshot | None = None
    error: ErrorInfo | None = None

    @property
    def ok(self) -> bool:
        return self.snapshot is not None


class RangeSelector(FrozenModel):
    """Which slice of the contribution calendar the analytics look at."""

    kind: RangeKind = "year"
    year: int | None = None
    start: date | None = None
    end: date | None = None


class ContributionFilters(FrozenModel):
    min_contributions: int = 0
    max_contributions: int | None = None
    # 0 is Sunday, 6 is Saturday.
    weekdays: frozenset[int] = ALL_WEEKDAYS

    @field_validator("weekdays")
    @classmethod
    def check_weekdays(cls, value: frozenset[int]) -> frozenset[int]:
        if not value <= ALL_WEEKDAYS:
            raise ValueError("weekdays must be within 0..6")
        return value

    def accepts(self, day: ContributionDay) -> bool:
        count = day.contribution_count
        if count < self.min_contributions:
            return False
        if self.max_contributions is not None and count > self.max_contributions:
            return False
        return (day.date.weekday() + 1) % 7 in self.weekdays


class ContributionLevel(FrozenModel):
    """One heatmap intensity bucket covering `min..max` inclusive."""

    min: int = Field(ge=0)
    max: int | None = None
    color: str
    label: str

    @model_validator(mode="after")
    def check_bounds(self) -> "ContributionLevel":
        if self.max is not None and self.max < self.min:
            raise ValueError("level max must not be below min")
        return self

    def contains(self, count: int) -> bool:
        if count < self.min:
            return False
        return self.max is None or count <= self.max


class BestDay(FrozenModel):
    date: date | None
    count: int


class BestMonth(FrozenModel):
    label: str
    count: int


class StreakTier(FrozenModel):
    level: str
    color: str


class StreakState(FrozenModel):
    current_streak: int = 0
    longest_streak: int = 0
    active_days: int = 0
    best_day: BestDay = BestDay(date=None, count=0)
    best_month: BestMonth = BestMonth(label="No data", count=0)
    streak_status: StreakStatus = "broken"
    total_contributions: int = 0
    this_year_total: int = 0
    average_per_day: float = 0.0
    today_contributions: int = 0
    days_tracked: int = 0
    streak_tier: StreakTier
    longest_streak_tier: StreakTier


class SummaryStats(FrozenModel):
    total: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    avg_daily: float = 0.0
    best_day: int = 0
    active_days: int = 0
    week_avg: float = 0.0


class HeatmapCell(FrozenModel):
    date: date
    weekday: int
    count: int
    level: int
    is_today: bool


class HeatmapWeek(FrozenModel):
    week_start: date
    days: tuple[HeatmapCell, ...]


class Heatmap(FrozenModel):
    start: date
    end: date
    levels: tuple[ContributionLevel, ...]
    weeks: tuple[HeatmapWeek, ...] = ()


class RepositoryTotals(FrozenModel):
    stars: int = 0
    forks: int = 0
    watchers: int = 0


class LanguageShare(FrozenModel):
    language: str
    bytes: int
    percentage: float


class MetricComparison(FrozenModel):
    key: str
    label: str
    user1: int
    user2: int
    difference: float
    winner: Winner


class ProfileComparison(FrozenModel):
    user1: str
    user2: str
    metrics: tuple[MetricComparison, ...]
    user1_wins: int
    user2_wins: int
    overall_winner: Winner


class TimelineEntry(FrozenModel):
    id: str | None
    type: str
    repo: str
    description: str
    created_at: datetime | None
    time_ago: str
