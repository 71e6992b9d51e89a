from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Values are read from process environment and optionally from `.env`.
    The GitHub token is optional; without it requests are anonymous and the
    GraphQL contribution calendar is never queried.
    """

    github_token: str | None = None
    github_api_base_url: str = "https://api.github.com"
    github_graphql_url: str = "https://api.github.com/graphql"
    contributions_api_url: str = "https://github-contributions-api.deno.dev"
    github_user_agent: str = "gitify-insights"
    github_timeout_seconds: float = 15.0
    refresh_interval_seconds: float = 300.0
    log_level: str = "INFO"
    sentry_dsn: str | None = None
    environment: str = "development"
    release: str | None = None
    sentry_traces_sample_rate: float = 0.1
    rate_limit_per_minute: int = 30
    rate_limit_window_seconds: int = 60

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
