from collections.abc import Iterable
from collections.abc import Mapping
from datetime import date
from datetime import datetime
from datetime import UTC
from typing import Any

from gitify.models import LanguageShare
from gitify.models import MetricComparison
from gitify.models import ProfileComparison
from gitify.models import ProfileSnapshot
from gitify.models import RepositoryTotals
from gitify.models import TimelineEntry
from gitify.models import Winner
from gitify.services.analytics_service import round_half_up


def _int_field(item: Mapping[str, Any], key: str) -> int:
    value = item.get(key)
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


def repository_totals(repositories: Iterable[Mapping[str, Any]]) -> RepositoryTotals:
    stars = forks = watchers = 0
    for repo in repositories:
        stars += _int_field(repo, "stargazers_count")
        forks += _int_field(repo, "forks_count")
        watchers += _int_field(repo, "watchers_count")
    return RepositoryTotals(stars=stars, forks=forks, watchers=watchers)


def language_breakdown(
    repo_languages: Mapping[str, Mapping[str, int]], limit: int = 10
) -> list[LanguageShare]:
    """Share of bytes per language across the sampled repositories."""

    totals: dict[str, int] = {}
    for languages in repo_languages.values():
        for language, size in languages.items():
            totals[language] = totals.get(language, 0) + size

    total_bytes = sum(totals.values())
    if not total_bytes:
        return []

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        LanguageShare(
            language=language,
            bytes=size,
            percentage=round_half_up(size * 100, total_bytes),
        )
        for language, size in ranked[:limit]
    ]


def percentage_difference(first: int, second: int) -> float:
    if second == 0:
        return 100.0 if first > 0 else 0.0
    return round_half_up((first - second) * 100, second)


def pick_winner(first: int, second: int) -> Winner:
    if first > second:
        return "user1"
    if second > first:
        return "user2"
    return "tie"


def _comparison_metrics(
    snapshot: ProfileSnapshot, year: int
) -> list[tuple[str, str, int]]:
    totals = repository_totals(snapshot.repositories)
    user = snapshot.user
    return [
        ("followers", "Followers", _int_field(user, "followers")),
        ("following", "Following", _int_field(user, "following")),
        ("repos", "Public Repos", _int_field(user, "public_repos")),
        ("gists", "Public Gists", _int_field(user, "public_gists")),
        ("total_stars", "Total Stars", totals.stars),
        ("total_forks", "Total Forks", totals.forks),
        (
            "contributions",
            "This Year Contributions",
            snapshot.contributions.totals_by_year.get(year, 0),
        ),
    ]


def compare_profiles(
    first: ProfileSnapshot, second: ProfileSnapshot, today: date | None = None
) -> ProfileComparison:
    """Metric-by-metric comparison; the overall winner won more metrics."""

    year = (today or date.today()).year
    metrics = []
    for (key, label, first_value), (_, _, second_value) in zip(
        _comparison_metrics(first, year), _comparison_metrics(second, year)
    ):
        metrics.append(
            MetricComparison(
                key=key,
                label=label,
                user1=first_value,
                user2=second_value,
                difference=percentage_difference(first_value, second_value),
                winner=pick_winner(first_value, second_value),
            )
        )

    first_wins = sum(1 for metric in metrics if metric.winner == "user1")
    second_wins = sum(1 for metric in metrics if metric.winner == "user2")
    return ProfileComparison(
        user1=first.user.get("login") or first.username,
        user2=second.user.get("login") or second.username,
        metrics=tuple(metrics),
        user1_wins=first_wins,
        user2_wins=second_wins,
        overall_winner=pick_winner(first_wins, second_wins),
    )


def _capitalized(value: object) -> str:
    text = value if isinstance(value, str) else ""
    return text[:1].upper() + text[1:]


def describe_event(event: Mapping[str, Any]) -> str:
    """One-line, human readable summary of a public GitHub event."""

    repo_info = event.get("repo")
    repo = repo_info.get("name", "") if isinstance(repo_info, Mapping) else ""
    payload = event.get("payload")
    payload = payload if isinstance(payload, Mapping) else {}
    event_type = str(event.get("type") or "")

    if event_type == "PushEvent":
        commits = payload.get("commits")
        count = len(commits) if isinstance(commits, list) else 0
        return f"Pushed {count} commit{'' if count == 1 else 's'} to {repo}"
    if event_type == "PullRequestEvent":
        return f"{_capitalized(payload.get('action'))} pull request in {repo}"
    if event_type == "IssuesEvent":
        return f"{_capitalized(payload.get('action'))} issue in {repo}"
    if event_type == "CreateEvent":
        return f"Created {payload.get('ref_type', '')} in {repo}"
    if event_type == "DeleteEvent":
        return f"Deleted {payload.get('ref_type', '')} in {repo}"
    if event_type == "ForkEvent":
        return f"Forked {repo}"
    if event_type == "WatchEvent":
        return f"Starred {repo}"
    return f"{event_type.replace('Event', '')} in {repo}"


def parse_github_datetime(raw_value: str) -> datetime:
    return datetime.fromisoformat(raw_value.replace("Z", "+00:00"))


def format_time_ago(moment: datetime, now: datetime) -> str:
    seconds = int((now - moment).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    if seconds < 604800:
        return f"{seconds // 86400}d ago"
    return moment.date().isoformat()


def event_types(events: Iterable[Mapping[str, Any]]) -> list[str]:
    seen: dict[str, None] = {}
    for event in events:
        if isinstance(event.get("type"), str):
            seen.setdefault(event["type"], None)
    return list(seen)


def build_timeline(
    events: Iterable[Mapping[str, Any]],
    event_type: str | None = None,
    limit: int | None = 10,
    now: datetime | None = None,
) -> list[TimelineEntry]:
    now = now or datetime.now(UTC)
    entries = []
    for event in events:
        if event_type and event.get("type") != event_type:
            continue

        created_at = None
        raw_created_at = event.get("created_at")
        if isinstance(raw_created_at, str):
            try:
                created_at = parse_github_datetime(raw_created_at)
            except ValueError:
                created_at = None

        repo_info = event.get("repo")
        entries.append(
            TimelineEntry(
                id=str(event["id"]) if event.get("id") is not None else None,
                type=str(event.get("type") or ""),
                repo=repo_info.get("name", "") if isinstance(repo_info, Mapping) else "",
                description=describe_event(event),
                created_at=created_at,
                time_ago=format_time_ago(created_at, now) if created_at else "",
            )
        )

    return entries if limit is None else entries[:limit]
