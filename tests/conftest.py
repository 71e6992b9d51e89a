from collections.abc import Callable
from datetime import date
from datetime import timedelta
from typing import Any

import httpx
import pytest

from gitify.clients.github_client import GitHubClient
from gitify.clients.github_client import GitHubClientConfig


TODAY = date(2024, 3, 10)

Route = Callable[[httpx.Request], httpx.Response] | tuple


def _build_response(route: Route, request: httpx.Request) -> httpx.Response:
    if callable(route):
        return route(request)
    status, body, *rest = route
    headers = rest[0] if rest else None
    return httpx.Response(status, json=body, headers=headers)


@pytest.fixture
def github_client_factory() -> Callable[..., GitHubClient]:
    """Build a `GitHubClient` whose requests are answered from a route table.

    Routes are keyed by URL path. Values are `(status, json_body[, headers])`
    tuples or callables taking the request. Unknown paths answer 404.
    """

    def factory(
        routes: dict[str, Route],
        token: str | None = None,
        seen: list[httpx.Request] | None = None,
    ) -> GitHubClient:
        def handler(request: httpx.Request) -> httpx.Response:
            if seen is not None:
                seen.append(request)
            route = routes.get(request.url.path)
            if route is None:
                return httpx.Response(404, json={"message": "Not Found"})
            return _build_response(route, request)

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return GitHubClient(GitHubClientConfig(token=token), http_client=http_client)

    return factory


def fallback_days(end: date, counts: list[int]) -> list[dict[str, Any]]:
    start = end - timedelta(days=len(counts) - 1)
    return [
        {"date": (start + timedelta(days=offset)).isoformat(), "count": count}
        for offset, count in enumerate(counts)
    ]


@pytest.fixture
def octocat_routes() -> dict[str, Route]:
    repos = [
        {
            "name": f"repo-{index}",
            "owner": {"login": "octocat"},
            "stargazers_count": index,
            "forks_count": 1,
            "watchers_count": 2,
        }
        for index in range(10)
    ]
    routes: dict[str, Route] = {
        "/rate_limit": (200, {"rate": {"limit": 60, "remaining": 59}}),
        "/users/octocat": (
            200,
            {
                "login": "octocat",
                "followers": 10,
                "following": 2,
                "public_repos": 10,
                "public_gists": 1,
            },
        ),
        "/users/octocat/repos": (200, repos),
        "/users/octocat/events/public": (
            200,
            [
                {
                    "id": "1",
                    "type": "PushEvent",
                    "repo": {"name": "octocat/repo-0"},
                    "payload": {"commits": [{"sha": "a"}, {"sha": "b"}]},
                    "created_at": "2024-03-10T10:00:00Z",
                }
            ],
        ),
        "/users/octocat/orgs": (200, [{"login": "github"}]),
        "/users/octocat/gists": (200, [{"id": "g1"}]),
        "/users/octocat/starred": (200, [{"name": "linguist"}]),
        "/octocat.json": (
            200,
            {
                "contributions": fallback_days(TODAY, [1, 2, 0, 3, 4]),
                "total": {"2024": 10},
            },
        ),
    }
    for repo in repos:
        routes[f"/repos/octocat/{repo['name']}/languages"] = (
            200,
            {"Python": 300, "Go": 100},
        )
    return routes
