"""Flask middleware registration for rate limiting, CORS and logging."""
import time
import uuid

from flask import g, request

from ..utils.http import get_client_ip, reply_response
from ..utils.logging import log_event

RATE_LIMITED_PATHS = ("/ask",)


def register_middlewares(app, settings, rate_limiter):
    """Register Flask middlewares on the app."""

    @app.before_request
    def attach_request_context():
        g.request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
        g.request_start = time.time()

    @app.before_request
    def enforce_rate_limit():
        if request.method == "OPTIONS" or request.path not in RATE_LIMITED_PATHS:
            return None
        if not rate_limiter.enabled:
            return None
        decision = rate_limiter.hit(get_client_ip())
        g.rate_limit_remaining = decision.remaining
        g.rate_limit_reset = decision.reset_seconds
        if not decision.allowed:
            log_event(30, "rate_limited", request_id=g.request_id, client_ip=get_client_ip())
            response, status = reply_response(f"{settings.brand_name}: too many requests, slow down.", 429)
            response.headers["Retry-After"] = str(decision.reset_seconds or 0)
            return response, status
        return None

    @app.after_request
    def add_headers(response):
        response.headers["X-Request-ID"] = getattr(g, "request_id", "")
        if getattr(g, "rate_limit_reset", None) is not None:
            response.headers["X-RateLimit-Limit"] = str(rate_limiter.limit)
            response.headers["X-RateLimit-Remaining"] = str(g.rate_limit_remaining)
            response.headers["X-RateLimit-Reset"] = str(g.rate_limit_reset)

        origins = settings.cors_origins
        request_origin = request.headers.get("Origin")
        allow_origin = None
        if "*" in origins:
            allow_origin = "*"
        elif request_origin and request_origin in origins:
            allow_origin = request_origin
            response.headers["Vary"] = "Origin"
        if allow_origin:
            response.headers["Access-Control-Allow-Origin"] = allow_origin
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, X-Request-ID"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"

        if request.path == "/healthz":
            return response
        latency_ms = None
        if hasattr(g, "request_start"):
            latency_ms = int((time.time() - g.request_start) * 1000)
        log_event(
            20,
            "request",
            request_id=getattr(g, "request_id", ""),
            method=request.method,
            path=request.path,
            status=response.status_code,
            latency_ms=latency_ms,
            client_ip=get_client_ip(),
        )
        return response
