from fastapi import FastAPI

from gitify.api.routes.profiles import router
from gitify.core.middleware import AggregationRateLimitMiddleware
from gitify.core.observability import configure_logging
from gitify.core.observability import init_sentry
from gitify.settings import Settings


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build the API application.

    Settings, including the GitHub token, are read once here and kept on
    `app.state` for the lifetime of the process.
    """

    app_settings = app_settings or Settings()
    configure_logging(app_settings)
    init_sentry(app_settings)

    app = FastAPI(title="Gitify Insights")
    app.state.settings = app_settings
    app.add_middleware(
        AggregationRateLimitMiddleware,
        requests_per_window=app_settings.rate_limit_per_minute,
        window_seconds=app_settings.rate_limit_window_seconds,
    )
    app.include_router(router)
    return app


app = create_app()
