import asyncio
from collections.abc import AsyncIterator
from collections.abc import Awaitable
from datetime import date
from typing import TypeVar

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Query
from fastapi import Request
from pydantic import ValidationError

from gitify.api.schemas.profiles import ProfileResponse
from gitify.api.schemas.profiles import TimelineResponse
from gitify.clients.github_client import GitHubClient
from gitify.clients.github_client import GitHubError
from gitify.clients.github_client import create_github_client
from gitify.models import ContributionFilters
from gitify.models import ContributionSnapshot
from gitify.models import Heatmap
from gitify.models import LanguageShare
from gitify.models import ProfileComparison
from gitify.models import ProfileSnapshot
from gitify.models import RangeKind
from gitify.models import RangeSelector
from gitify.models import StreakState
from gitify.models import SummaryStats
from gitify.services.analytics_service import available_years
from gitify.services.analytics_service import compute_contribution_stats
from gitify.services.analytics_service import compute_streaks
from gitify.services.heatmap_service import build_heatmap
from gitify.services.levels import LevelStrategy
from gitify.services.profile_service import fetch_profile_snapshot
from gitify.services.profile_service import fetch_user_contributions
from gitify.services.view_models import build_timeline
from gitify.services.view_models import compare_profiles
from gitify.services.view_models import event_types
from gitify.services.view_models import language_breakdown
from gitify.services.view_models import repository_totals


router = APIRouter()

T = TypeVar("T")

STATUS_BY_ERROR_KIND = {
    "not_found": 404,
    "rate_limited": 429,
    "unauthorized": 502,
    "forbidden": 502,
    "upstream_error": 502,
    "network_error": 503,
}


async def get_github_client(request: Request) -> AsyncIterator[GitHubClient]:
    """Yield a GitHub client configured from application settings."""

    async with create_github_client(request.app.state.settings) as client:
        yield client


def get_range_selector(
    range_kind: RangeKind = Query(default="year", alias="range"),
    year: int | None = Query(default=None, ge=1970, le=9999),
    start: date | None = None,
    end: date | None = None,
) -> RangeSelector:
    return RangeSelector(kind=range_kind, year=year, start=start, end=end)


def get_contribution_filters(
    min_contributions: int = Query(default=0, ge=0),
    max_contributions: int | None = Query(default=None, ge=0),
    weekdays: list[int] = Query(default=list(range(7))),
) -> ContributionFilters:
    try:
        return ContributionFilters(
            min_contributions=min_contributions,
            max_contributions=max_contributions,
            weekdays=frozenset(weekdays),
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=400, detail="weekdays must be within 0..6"
        ) from exc


async def _load(fetch: Awaitable[T]) -> T:
    try:
        return await fetch
    except GitHubError as exc:
        raise HTTPException(
            status_code=STATUS_BY_ERROR_KIND.get(exc.kind, 502),
            detail=exc.message,
            headers={"X-GitHub-Error": exc.kind},
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="username cannot be empty") from exc


async def load_snapshot(client: GitHubClient, username: str) -> ProfileSnapshot:
    return await _load(fetch_profile_snapshot(client, username))


async def load_contributions(
    client: GitHubClient, username: str
) -> ContributionSnapshot:
    return await _load(fetch_user_contributions(client, username))


@router.get("/")
async def root() -> dict[str, str]:
    """Return a basic service greeting."""

    return {"message": "Hello World"}


@router.get("/health/live")
def health_live() -> dict[str, str]:
    """Return liveness probe response for health checks."""

    return {"status": "ok"}


@router.get("/profiles/{username}")
async def get_profile(
    username: str, client: GitHubClient = Depends(get_github_client)
) -> ProfileResponse:
    """Return the aggregated profile snapshot for a GitHub user."""

    snapshot = await load_snapshot(client, username)
    return ProfileResponse(
        snapshot=snapshot,
        repository_totals=repository_totals(snapshot.repositories),
        languages=language_breakdown(snapshot.repo_languages),
        available_years=available_years(snapshot.contributions),
    )


@router.get("/profiles/{username}/stats")
async def get_contribution_stats(
    username: str,
    selector: RangeSelector = Depends(get_range_selector),
    filters: ContributionFilters = Depends(get_contribution_filters),
    client: GitHubClient = Depends(get_github_client),
) -> SummaryStats:
    """Return summary statistics for the selected range and filters."""

    contributions = await load_contributions(client, username)
    try:
        return compute_contribution_stats(contributions, selector, filters)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/profiles/{username}/heatmap")
async def get_heatmap(
    username: str,
    strategy: LevelStrategy = "manual",
    selector: RangeSelector = Depends(get_range_selector),
    filters: ContributionFilters = Depends(get_contribution_filters),
    client: GitHubClient = Depends(get_github_client),
) -> Heatmap:
    """Return the week-aligned contribution heatmap."""

    contributions = await load_contributions(client, username)
    try:
        return build_heatmap(contributions, selector, filters, strategy=strategy)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/profiles/{username}/streaks")
async def get_streaks(
    username: str, client: GitHubClient = Depends(get_github_client)
) -> StreakState:
    """Return current and longest streaks with activity highlights."""

    contributions = await load_contributions(client, username)
    return compute_streaks(contributions)


@router.get("/profiles/{username}/languages")
async def get_languages(
    username: str,
    limit: int = Query(default=10, ge=1, le=50),
    client: GitHubClient = Depends(get_github_client),
) -> list[LanguageShare]:
    """Return language shares across the most recently updated repositories."""

    snapshot = await load_snapshot(client, username)
    return language_breakdown(snapshot.repo_languages, limit)


@router.get("/profiles/{username}/timeline")
async def get_timeline(
    username: str,
    event_type: str | None = None,
    limit: int = Query(default=10, ge=1, le=100),
    client: GitHubClient = Depends(get_github_client),
) -> TimelineResponse:
    """Return recent public events as readable timeline entries."""

    snapshot = await load_snapshot(client, username)
    return TimelineResponse(
        event_types=event_types(snapshot.events),
        entries=build_timeline(snapshot.events, event_type=event_type, limit=limit),
    )


@router.get("/compare/{first}/{second}")
async def compare(
    first: str, second: str, client: GitHubClient = Depends(get_github_client)
) -> ProfileComparison:
    """Compare two users metric by metric."""

    snapshots = await asyncio.gather(
        load_snapshot(client, first),
        load_snapshot(client, second),
        return_exceptions=True,
    )
    for outcome in snapshots:
        if isinstance(outcome, BaseException):
            raise outcome

    first_snapshot, second_snapshot = snapshots
    return compare_profiles(first_snapshot, second_snapshot)
