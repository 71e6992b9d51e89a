import asyncio
import logging
from collections.abc import Awaitable
from collections.abc import Callable
from datetime import date
from typing import Any
from typing import TypeVar

from gitify.clients.github_client import GitHubClient
from gitify.clients.github_client import GitHubError
from gitify.models import AggregationResult
from gitify.models import ContributionSnapshot
from gitify.models import ErrorInfo
from gitify.models import ProfileSnapshot
from gitify.services.contribution_service import fetch_contributions
from gitify.settings import Settings


logger = logging.getLogger(__name__)

REPOSITORY_COUNT = 12
EVENT_COUNT = 30
GIST_COUNT = 10
STARRED_COUNT = 10
LANGUAGE_REPOSITORY_COUNT = 8

T = TypeVar("T")


async def _degrade(label: str, username: str, call: Awaitable[T], default: T) -> T:
    """Await `call`, replacing any failure with `default`."""

    try:
        return await call
    except (GitHubError, ValueError) as exc:
        kind = getattr(exc, "kind", type(exc).__name__)
        logger.warning("Fetching %s for %s failed (%s): %s", label, username, kind, exc)
        return default


async def _fetch_languages(
    client: GitHubClient, username: str, repositories: list[dict[str, Any]]
) -> dict[str, dict[str, int]]:
    selected = [
        repo for repo in repositories if isinstance(repo.get("name"), str)
    ][:LANGUAGE_REPOSITORY_COUNT]

    calls = []
    for repo in selected:
        owner = repo.get("owner")
        owner_login = owner.get("login") if isinstance(owner, dict) else None
        calls.append(
            _degrade(
                f"languages of {repo['name']}",
                username,
                client.fetch_repository_languages(owner_login or username, repo["name"]),
                {},
            )
        )

    results = await asyncio.gather(*calls)
    return {repo["name"]: languages for repo, languages in zip(selected, results)}


async def fetch_profile_snapshot(
    client: GitHubClient,
    username: str,
    today: date | None = None,
) -> ProfileSnapshot:
    """Fetch everything shown for `username` and build one snapshot.

    The user lookup is the only fetch whose failure propagates; every other
    branch degrades to an empty value.

    Raises:
        GitHubError: If the primary user lookup fails.
        ValueError: If `username` is empty.
    """

    username = username.strip()
    if not username:
        raise ValueError("username cannot be empty")

    await client.check_rate_limit()
    logger.info("Fetching all data for %s", username)

    # Wait for every branch even when the user lookup fails, so no request
    # outlives the aggregation.
    results = await asyncio.gather(
        client.fetch_user(username),
        _degrade(
            "repositories",
            username,
            client.fetch_repositories(username, REPOSITORY_COUNT),
            [],
        ),
        _degrade("events", username, client.fetch_events(username, EVENT_COUNT), []),
        _degrade("organizations", username, client.fetch_organizations(username), []),
        _degrade("gists", username, client.fetch_gists(username, GIST_COUNT), []),
        _degrade(
            "starred repositories",
            username,
            client.fetch_starred(username, STARRED_COUNT),
            [],
        ),
        fetch_contributions(client, username, today),
        return_exceptions=True,
    )
    for outcome in results:
        if isinstance(outcome, BaseException):
            raise outcome

    user, repositories, events, organizations, gists, starred, contributions = results

    repo_languages = await _fetch_languages(client, username, repositories)

    logger.info("Fetched all data for %s", username)
    return ProfileSnapshot(
        username=username,
        user=user,
        repositories=tuple(repositories),
        events=tuple(events),
        organizations=tuple(organizations),
        gists=tuple(gists),
        starred_repositories=tuple(starred),
        contributions=contributions,
        repo_languages=repo_languages,
    )


async def fetch_all_user_data(
    client: GitHubClient,
    username: str,
    today: date | None = None,
) -> AggregationResult:
    """Like `fetch_profile_snapshot`, but returns the failure as a value."""

    try:
        snapshot = await fetch_profile_snapshot(client, username, today)
    except GitHubError as exc:
        logger.error("Error fetching user data for %s: %s", username, exc.message)
        return AggregationResult(
            username=username,
            error=ErrorInfo(
                kind=exc.kind, message=exc.message, status_code=exc.status_code
            ),
        )
    except ValueError as exc:
        return AggregationResult(
            username=username,
            error=ErrorInfo(kind="invalid_username", message=str(exc)),
        )

    return AggregationResult(username=username, snapshot=snapshot)


async def fetch_user_contributions(
    client: GitHubClient,
    username: str,
    today: date | None = None,
) -> ContributionSnapshot:
    """Fetch only the contribution calendar, after confirming the user exists.

    Raises:
        GitHubError: If the user lookup fails.
        ValueError: If `username` is empty.
    """

    username = username.strip()
    if not username:
        raise ValueError("username cannot be empty")

    user, contributions = await asyncio.gather(
        client.fetch_user(username),
        fetch_contributions(client, username, today),
        return_exceptions=True,
    )
    if isinstance(user, BaseException):
        raise user
    if isinstance(contributions, BaseException):
        raise contributions
    return contributions


Aggregate = Callable[[str], Awaitable[AggregationResult]]


class SearchSession:
    """Tracks the latest search and drops results of superseded ones.

    Every call to `search` gets a new id; a completion whose id is no longer
    current is discarded and `search` returns `None` for it.
    """

    def __init__(self, aggregate: Aggregate) -> None:
        self._aggregate = aggregate
        self._search_id = 0
        self.result: AggregationResult | None = None

    @property
    def snapshot(self) -> ProfileSnapshot | None:
        return self.result.snapshot if self.result else None

    async def search(self, username: str) -> AggregationResult | None:
        username = username.strip()
        if not username:
            return None

        self._search_id += 1
        search_id = self._search_id
        self.result = None

        result = await self._aggregate(username)
        if search_id != self._search_id:
            logger.info("Discarding stale result for %s", username)
            return None

        self.result = result
        return result

    def reset(self) -> None:
        self._search_id += 1
        self.result = None


class ContributionRefresher:
    """Periodically re-fetches contributions while the context is open.

    Usage::

        async with ContributionRefresher(client, "octocat", on_refresh, 300):
            ...

    Leaving the block cancels the background task and waits for it.
    """

    def __init__(
        self,
        client: GitHubClient,
        username: str,
        on_refresh: Callable[[ContributionSnapshot], None],
        interval: float,
    ) -> None:
        if interval <= 0:
            raise ValueError("refresh interval must be positive")
        self.client = client
        self.username = username
        self.on_refresh = on_refresh
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(
        cls,
        client: GitHubClient,
        username: str,
        on_refresh: Callable[[ContributionSnapshot], None],
        settings: Settings,
    ) -> "ContributionRefresher":
        return cls(client, username, on_refresh, settings.refresh_interval_seconds)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh_now(self) -> ContributionSnapshot:
        snapshot = await fetch_contributions(self.client, self.username)
        self.on_refresh(snapshot)
        return snapshot

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.refresh_now()
            except Exception:
                logger.exception("Auto-refresh failed for %s", self.username)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> "ContributionRefresher":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
