"""Application factory and entrypoint."""
import os
import time

from flask import Flask

from ..api.handlers import register_routes
from ..api.middleware import register_middlewares
from ..services.providers import build_providers
from ..utils.logging import log_event, setup_logging
from .caller import ProviderCaller
from .ratelimit import RateLimiter
from .settings import Settings, get_settings


def create_app(settings: Settings | None = None, providers=None) -> Flask:
    """Create and configure the Flask application."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_dir)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = settings.max_content_length
    app.config["APP_STARTED_AT"] = time.time()
    app.config["SETTINGS"] = settings

    if providers is None:
        providers = build_providers(settings)
    caller = ProviderCaller(providers, brand_name=settings.brand_name, preview_chars=settings.preview_chars)

    rate_limiter = RateLimiter(settings.rate_limit_requests, settings.rate_limit_window_seconds)
    register_middlewares(app, settings, rate_limiter)
    register_routes(app, settings, caller)
    return app


def run() -> None:
    """Run the Flask development server."""
    app = create_app()
    settings = app.config["SETTINGS"]

    config_errors = settings.validate()
    for err in config_errors:
        log_event(40, "config_error", error=err)
    if config_errors and settings.strict_config:
        raise SystemExit("Strict config enabled; fix environment configuration.")

    debug = os.getenv("FLASK_DEBUG", "").lower() in ("1", "true", "yes", "on")
    log_event(20, "startup", port=settings.port, providers=list(settings.providers))
    app.run(host="0.0.0.0", port=settings.port, debug=debug)


if __name__ == "__main__":
    run()
