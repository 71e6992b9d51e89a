import logging
from collections.abc import Mapping
from datetime import datetime
from datetime import UTC
from typing import Any

import httpx
from pydantic import BaseModel
from pydantic import ConfigDict

from gitify.settings import Settings


logger = logging.getLogger(__name__)

REST_ACCEPT = "application/vnd.github.v3+json"

CONTRIBUTION_CALENDAR_QUERY = """
query($username: String!) {
  user(login: $username) {
    contributionsCollection {
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays {
            date
            contributionCount
            color
          }
        }
      }
    }
  }
}
"""


class GitHubError(Exception):
    """Base class for failed GitHub requests."""

    kind = "upstream_error"
    default_message = "GitHub API request failed"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(GitHubError):
    kind = "not_found"
    default_message = "User not found"


class RateLimitedError(GitHubError):
    kind = "rate_limited"
    default_message = "Rate limit exceeded. Please wait or add a valid GitHub token."

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = 403,
        reset_at: datetime | None = None,
    ):
        super().__init__(message, status_code)
        self.reset_at = reset_at


class UnauthorizedError(GitHubError):
    kind = "unauthorized"
    default_message = "Invalid GitHub token. Please check your token."


class ForbiddenError(GitHubError):
    kind = "forbidden"
    default_message = "Access forbidden. Please check your GitHub token permissions."


class UpstreamError(GitHubError):
    kind = "upstream_error"


class NetworkError(GitHubError):
    kind = "network_error"
    default_message = "Could not reach GitHub"


class GitHubClientConfig(BaseModel):
    """Immutable transport configuration, built once at startup."""

    model_config = ConfigDict(frozen=True)

    token: str | None = None
    api_base_url: str = "https://api.github.com"
    graphql_url: str = "https://api.github.com/graphql"
    contributions_url: str = "https://github-contributions-api.deno.dev"
    user_agent: str = "gitify-insights"
    timeout: float = 15.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "GitHubClientConfig":
        token = (settings.github_token or "").strip() or None
        return cls(
            token=token,
            api_base_url=settings.github_api_base_url.rstrip("/"),
            graphql_url=settings.github_graphql_url,
            contributions_url=settings.contributions_api_url.rstrip("/"),
            user_agent=settings.github_user_agent,
            timeout=settings.github_timeout_seconds,
        )


def _parse_reset(raw_value: str | None) -> datetime | None:
    if not raw_value or not raw_value.isdigit():
        return None
    return datetime.fromtimestamp(int(raw_value), UTC)


def raise_for_github_status(
    response: httpx.Response, not_found_message: str | None = None
) -> None:
    """Map a non-2xx GitHub response to the matching `GitHubError`."""

    status = response.status_code
    if 200 <= status < 300:
        return

    if status == 404:
        raise NotFoundError(not_found_message, status_code=status)
    if status == 401:
        raise UnauthorizedError(status_code=status)
    if status == 403:
        if response.headers.get("x-ratelimit-remaining") == "0":
            raise RateLimitedError(
                status_code=status,
                reset_at=_parse_reset(response.headers.get("x-ratelimit-reset")),
            )
        raise ForbiddenError(status_code=status)
    raise UpstreamError(f"GitHub API error: {status}", status_code=status)


def _require_username(username: str) -> str:
    if not isinstance(username, str) or not username.strip():
        raise ValueError("username cannot be empty")
    return username.strip()


class GitHubClient:
    """Async access to the GitHub REST and GraphQL endpoints used by the dashboard.

    Every call issues exactly one request and either returns decoded JSON or
    raises a `GitHubError` subclass. Retries are left to callers.
    """

    def __init__(
        self,
        config: GitHubClientConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout)

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    @property
    def has_token(self) -> bool:
        return bool(self.config.token)

    def rest_headers(self) -> dict[str, str]:
        headers = {
            "Accept": REST_ACCEPT,
            "User-Agent": self.config.user_agent,
        }
        if self.config.token:
            headers["Authorization"] = f"token {self.config.token}"
        return headers

    def graphql_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.config.user_agent,
        }
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._http.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise NetworkError(f"Could not reach {url}: {exc}") from exc
        except httpx.RequestError as exc:
            # Undecodable bodies and redirect loops.
            raise UpstreamError(f"Invalid response from {url}: {exc}") from exc

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                "GitHub returned an invalid JSON body", status_code=response.status_code
            ) from exc

    async def _get_rest(
        self,
        path: str,
        params: Mapping[str, str | int] | None = None,
        not_found_message: str | None = None,
    ) -> Any:
        response = await self._send(
            "GET",
            f"{self.config.api_base_url}{path}",
            params=params,
            headers=self.rest_headers(),
        )
        raise_for_github_status(response, not_found_message)
        return self._decode(response)

    async def _get_rest_list(
        self, path: str, params: Mapping[str, str | int] | None = None
    ) -> list[dict[str, Any]]:
        payload = await self._get_rest(
            path, params, not_found_message="Resource not found"
        )
        if not isinstance(payload, list):
            raise UpstreamError(f"Expected a list from {path}")
        return [item for item in payload if isinstance(item, dict)]

    async def fetch_user(self, username: str) -> dict[str, Any]:
        username = _require_username(username)
        logger.info("Fetching GitHub user %s", username)
        payload = await self._get_rest(f"/users/{username}")
        if not isinstance(payload, dict):
            raise UpstreamError("GitHub user response is invalid")
        return payload

    async def fetch_repositories(
        self, username: str, count: int = 12
    ) -> list[dict[str, Any]]:
        username = _require_username(username)
        return await self._get_rest_list(
            f"/users/{username}/repos", {"sort": "updated", "per_page": count}
        )

    async def fetch_events(self, username: str, count: int = 30) -> list[dict[str, Any]]:
        username = _require_username(username)
        return await self._get_rest_list(
            f"/users/{username}/events/public", {"per_page": count}
        )

    async def fetch_organizations(self, username: str) -> list[dict[str, Any]]:
        username = _require_username(username)
        return await self._get_rest_list(f"/users/{username}/orgs")

    async def fetch_gists(self, username: str, count: int = 10) -> list[dict[str, Any]]:
        username = _require_username(username)
        return await self._get_rest_list(f"/users/{username}/gists", {"per_page": count})

    async def fetch_starred(self, username: str, count: int = 10) -> list[dict[str, Any]]:
        username = _require_username(username)
        return await self._get_rest_list(
            f"/users/{username}/starred", {"per_page": count}
        )

    async def fetch_repository_languages(self, owner: str, repo: str) -> dict[str, int]:
        payload = await self._get_rest(
            f"/repos/{owner}/{repo}/languages", not_found_message="Repository not found"
        )
        if not isinstance(payload, dict):
            raise UpstreamError("GitHub languages response is invalid")
        return {
            language: size
            for language, size in payload.items()
            if isinstance(language, str) and isinstance(size, int)
        }

    async def fetch_rate_limit(self) -> dict[str, Any]:
        payload = await self._get_rest("/rate_limit")
        if not isinstance(payload, dict):
            raise UpstreamError("GitHub rate limit response is invalid")
        return payload

    async def check_rate_limit(self) -> dict[str, Any] | None:
        """Log the remaining REST quota; never fails."""

        try:
            payload = await self.fetch_rate_limit()
        except GitHubError as exc:
            logger.warning("Failed to check rate limit: %s", exc.message)
            return None

        rate = payload.get("rate")
        if isinstance(rate, Mapping):
            logger.info(
                "GitHub rate limit: %s/%s remaining",
                rate.get("remaining"),
                rate.get("limit"),
            )
        return payload

    async def fetch_contribution_calendar(self, username: str) -> dict[str, Any]:
        """Query the GraphQL contribution calendar; requires a token."""

        username = _require_username(username)
        if not self.config.token:
            raise UnauthorizedError("A GitHub token is required for GraphQL requests")

        response = await self._send(
            "POST",
            self.config.graphql_url,
            json={
                "query": CONTRIBUTION_CALENDAR_QUERY,
                "variables": {"username": username},
            },
            headers=self.graphql_headers(),
        )
        raise_for_github_status(response)

        payload = self._decode(response)
        if not isinstance(payload, Mapping):
            raise UpstreamError("GitHub GraphQL response is invalid")

        errors = payload.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) and errors else {}
            message = first.get("message") if isinstance(first, Mapping) else None
            raise UpstreamError(message or "GitHub GraphQL returned errors")

        data = payload.get("data")
        if not isinstance(data, Mapping):
            raise UpstreamError("GitHub GraphQL data is missing")

        user = data.get("user")
        if not isinstance(user, Mapping):
            raise NotFoundError()

        collection = user.get("contributionsCollection")
        if not isinstance(collection, Mapping):
            raise UpstreamError("GitHub contributionsCollection is missing")

        calendar = collection.get("contributionCalendar")
        if not isinstance(calendar, Mapping):
            raise UpstreamError("GitHub contributionCalendar is missing")

        return dict(calendar)

    async def fetch_fallback_contributions(self, username: str) -> dict[str, Any]:
        """Fetch contribution data from the public third-party service."""

        username = _require_username(username)
        response = await self._send(
            "GET",
            f"{self.config.contributions_url}/{username}.json",
            headers={"User-Agent": self.config.user_agent},
        )
        if response.status_code >= 400:
            raise UpstreamError(
                f"Failed to fetch contributions: {response.status_code}",
                status_code=response.status_code,
            )

        payload = self._decode(response)
        if not isinstance(payload, dict):
            raise UpstreamError("Contribution service response is invalid")
        return payload


def create_github_client(settings: Settings) -> GitHubClient:
    return GitHubClient(GitHubClientConfig.from_settings(settings))
