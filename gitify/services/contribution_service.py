import logging
from collections.abc import Mapping
from datetime import date
from typing import Any
from typing import Literal

from pydantic import BaseModel
from pydantic import Field

from gitify.clients.github_client import GitHubClient
from gitify.clients.github_client import GitHubError
from gitify.models import ContributionDay
from gitify.models import ContributionSnapshot


logger = logging.getLogger(__name__)


class GraphQLCalendar(BaseModel):
    """Raw `contributionCalendar` object from the GitHub GraphQL API."""

    source: Literal["graphql"] = "graphql"
    payload: dict[str, Any]
    year: int


class FallbackContributions(BaseModel):
    """Raw body of the third-party contribution service."""

    source: Literal["fallback"] = "fallback"
    payload: dict[str, Any] = Field(default_factory=dict)


RawContributions = GraphQLCalendar | FallbackContributions


def _parse_day(raw_date: object, raw_count: object) -> ContributionDay | None:
    if not isinstance(raw_date, str) or isinstance(raw_count, bool):
        return None
    if raw_count is None:
        raw_count = 0
    if not isinstance(raw_count, int):
        return None

    try:
        parsed_day = date.fromisoformat(raw_date[:10])
    except ValueError:
        return None

    return ContributionDay(date=parsed_day, contribution_count=max(0, raw_count))


def _ordered_unique(days: list[ContributionDay]) -> tuple[ContributionDay, ...]:
    by_date: dict[date, ContributionDay] = {}
    for day in days:
        by_date[day.date] = day
    return tuple(by_date[key] for key in sorted(by_date))


def normalize_graphql_calendar(calendar: GraphQLCalendar) -> ContributionSnapshot:
    """Flatten week-grouped calendar days into one ordered sequence."""

    days: list[ContributionDay] = []
    weeks = calendar.payload.get("weeks")
    for week in weeks if isinstance(weeks, list) else []:
        if not isinstance(week, Mapping):
            continue
        contribution_days = week.get("contributionDays")
        if not isinstance(contribution_days, list):
            continue
        for item in contribution_days:
            if not isinstance(item, Mapping):
                continue
            day = _parse_day(item.get("date"), item.get("contributionCount"))
            if day is not None:
                days.append(day)

    total = calendar.payload.get("totalContributions")
    totals = {calendar.year: total} if isinstance(total, int) else {}
    return ContributionSnapshot(days=_ordered_unique(days), totals_by_year=totals)


def normalize_fallback_contributions(raw: FallbackContributions) -> ContributionSnapshot:
    """Map `{date, count}` records of the fallback service to canonical days."""

    days: list[ContributionDay] = []
    contributions = raw.payload.get("contributions")
    for item in contributions if isinstance(contributions, list) else []:
        if not isinstance(item, Mapping):
            continue
        day = _parse_day(item.get("date"), item.get("count"))
        if day is not None:
            days.append(day)

    # Totals without day data are not trusted.
    if not days:
        return ContributionSnapshot.empty()

    totals: dict[int, int] = {}
    raw_total = raw.payload.get("total")
    if isinstance(raw_total, Mapping):
        for raw_year, raw_count in raw_total.items():
            if str(raw_year).isdigit() and isinstance(raw_count, int):
                totals[int(raw_year)] = raw_count

    return ContributionSnapshot(days=_ordered_unique(days), totals_by_year=totals)


def normalize_contributions(raw: RawContributions) -> ContributionSnapshot:
    if isinstance(raw, GraphQLCalendar):
        return normalize_graphql_calendar(raw)
    return normalize_fallback_contributions(raw)


async def fetch_contributions(
    client: GitHubClient,
    username: str,
    today: date | None = None,
) -> ContributionSnapshot:
    """Fetch contributions, preferring GraphQL when a token is configured.

    Falls back to the public contribution service; when both paths fail the
    empty snapshot is returned instead of an error.
    """

    today = today or date.today()

    if client.has_token:
        try:
            calendar = await client.fetch_contribution_calendar(username)
            raw = GraphQLCalendar(payload=calendar, year=today.year)
            snapshot = normalize_contributions(raw)
        except (GitHubError, ValueError) as exc:
            logger.warning(
                "GraphQL contributions failed for %s, falling back: %s", username, exc
            )
        else:
            return snapshot

    try:
        payload = await client.fetch_fallback_contributions(username)
        return normalize_contributions(FallbackContributions(payload=payload))
    except (GitHubError, ValueError) as exc:
        logger.error("Error fetching contributions for %s: %s", username, exc)
        return ContributionSnapshot.empty()
