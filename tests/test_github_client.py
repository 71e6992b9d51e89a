import asyncio

import httpx
import pytest

from gitify.clients.github_client import ForbiddenError
from gitify.clients.github_client import GitHubClientConfig
from gitify.clients.github_client import NetworkError
from gitify.clients.github_client import NotFoundError
from gitify.clients.github_client import RateLimitedError
from gitify.clients.github_client import UnauthorizedError
from gitify.clients.github_client import UpstreamError
from gitify.settings import Settings


def test_rest_requests_use_token_credential(github_client_factory) -> None:
    """REST requests send the token credential and paging params."""

    seen: list[httpx.Request] = []
    client = github_client_factory(
        {"/users/octocat/repos": (200, [{"name": "hello"}])}, token="secret", seen=seen
    )

    repos = asyncio.run(client.fetch_repositories("octocat", 12))

    assert repos == [{"name": "hello"}]
    request = seen[0]
    assert request.headers["Authorization"] == "token secret"
    assert request.headers["Accept"] == "application/vnd.github.v3+json"
    assert request.url.params["sort"] == "updated"
    assert request.url.params["per_page"] == "12"


def test_anonymous_requests_have_no_auth_header(github_client_factory) -> None:
    """Anonymous requests carry no Authorization header."""

    seen: list[httpx.Request] = []
    client = github_client_factory({"/users/octocat": (200, {"login": "octocat"})}, seen=seen)

    asyncio.run(client.fetch_user("octocat"))

    assert "Authorization" not in seen[0].headers


@pytest.mark.parametrize(
    ("status", "headers", "error_type"),
    [
        (404, None, NotFoundError),
        (401, None, UnauthorizedError),
        (403, {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1700000000"}, RateLimitedError),
        (403, {"x-ratelimit-remaining": "12"}, ForbiddenError),
        (500, None, UpstreamError),
    ],
)
def test_status_codes_map_to_error_kinds(
    github_client_factory, status, headers, error_type
) -> None:
    """GitHub status codes map to typed errors."""

    client = github_client_factory({"/users/octocat": (status, {"message": "x"}, headers)})

    with pytest.raises(error_type) as exc_info:
        asyncio.run(client.fetch_user("octocat"))

    assert exc_info.value.status_code == status


def test_rate_limited_error_carries_reset_time(github_client_factory) -> None:
    """Rate limit errors expose the reset time."""

    client = github_client_factory(
        {
            "/users/octocat": (
                403,
                {},
                {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1700000000"},
            )
        }
    )

    with pytest.raises(RateLimitedError) as exc_info:
        asyncio.run(client.fetch_user("octocat"))

    assert exc_info.value.kind == "rate_limited"
    assert exc_info.value.reset_at is not None
    assert int(exc_info.value.reset_at.timestamp()) == 1700000000


def test_not_found_user_message() -> None:
    """A missing user reports "User not found"."""

    assert NotFoundError().message == "User not found"


def test_transport_failure_raises_network_error(github_client_factory) -> None:
    """Transport failures surface as network errors."""

    def broken(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = github_client_factory({"/users/octocat": broken})

    with pytest.raises(NetworkError):
        asyncio.run(client.fetch_user("octocat"))


def test_empty_username_is_rejected(github_client_factory) -> None:
    """Blank usernames are rejected before any request."""

    client = github_client_factory({})

    with pytest.raises(ValueError):
        asyncio.run(client.fetch_user("  "))


def test_graphql_requires_token_and_sends_no_request(github_client_factory) -> None:
    """GraphQL without a token fails without a request."""

    seen: list[httpx.Request] = []
    client = github_client_factory({}, seen=seen)

    with pytest.raises(UnauthorizedError):
        asyncio.run(client.fetch_contribution_calendar("octocat"))

    assert seen == []


def test_graphql_uses_bearer_credential(github_client_factory) -> None:
    """GraphQL requests use the Bearer credential."""

    seen: list[httpx.Request] = []
    calendar = {"totalContributions": 3, "weeks": []}
    client = github_client_factory(
        {
            "/graphql": (
                200,
                {"data": {"user": {"contributionsCollection": {"contributionCalendar": calendar}}}},
            )
        },
        token="secret",
        seen=seen,
    )

    result = asyncio.run(client.fetch_contribution_calendar("octocat"))

    assert result == calendar
    assert seen[0].method == "POST"
    assert seen[0].headers["Authorization"] == "Bearer secret"


def test_graphql_errors_raise_upstream_error(github_client_factory) -> None:
    """GraphQL error payloads raise with the first message."""

    client = github_client_factory(
        {"/graphql": (200, {"errors": [{"message": "Could not resolve user"}]})},
        token="secret",
    )

    with pytest.raises(UpstreamError, match="Could not resolve user"):
        asyncio.run(client.fetch_contribution_calendar("octocat"))


def test_languages_drop_non_integer_sizes(github_client_factory) -> None:
    """Language sizes that are not integers are dropped."""

    client = github_client_factory(
        {"/repos/octocat/hello/languages": (200, {"Python": 10, "Broken": "x"})}
    )

    assert asyncio.run(client.fetch_repository_languages("octocat", "hello")) == {
        "Python": 10
    }


def test_check_rate_limit_never_raises(github_client_factory) -> None:
    """Rate limit check swallows failures and returns None."""

    client = github_client_factory({"/rate_limit": (500, {})})

    assert asyncio.run(client.check_rate_limit()) is None


def test_config_from_settings_blank_token_is_anonymous() -> None:
    """A blank token in settings means anonymous access."""

    settings = Settings(_env_file=None, github_token="  ")

    config = GitHubClientConfig.from_settings(settings)

    assert config.token is None
    assert config.api_base_url == "https://api.github.com"


def test_undecodable_body_is_an_upstream_error(github_client_factory) -> None:
    """A body that cannot be decoded is reported as an upstream failure."""

    client = github_client_factory(
        {
            "/users/octocat": lambda request: httpx.Response(
                200, content=b"plain text", headers={"content-encoding": "gzip"}
            )
        }
    )

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(client.fetch_user("octocat"))

    assert exc_info.value.kind == "upstream_error"
