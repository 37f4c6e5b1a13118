"""Environment-driven settings and the rate limiter."""

import pytest

from askrelay.core.ratelimit import RateLimiter
from askrelay.core.settings import Settings, get_settings


@pytest.fixture
def fresh_settings(monkeypatch):
    for name in ("PROVIDERS", "BRAND_NAME", "OPENAI_API_KEY", "UPSTREAM_TIMEOUT", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


def test_defaults(fresh_settings):
    settings = get_settings()

    assert settings.providers == ("openai_responses", "openai_chat")
    assert settings.brand_name == "SzalAI"
    assert settings.upstream_timeout == 15.0
    assert settings.max_message_chars == 1200
    assert settings.cors_origins == ("*",)
    assert "SzalAI" in settings.instructions


def test_environment_overrides(fresh_settings):
    fresh_settings.setenv("PROVIDERS", "gemini, poe ,")
    fresh_settings.setenv("BRAND_NAME", "Bob")
    fresh_settings.setenv("OPENAI_API_KEY", "sk-env")
    fresh_settings.setenv("UPSTREAM_TIMEOUT", "2.5")

    settings = get_settings()

    assert settings.providers == ("gemini", "poe")
    assert settings.brand_name == "Bob"
    assert settings.openai_api_key == "sk-env"
    assert settings.upstream_timeout == 2.5


def test_settings_are_built_once(fresh_settings):
    assert get_settings() is get_settings()


def test_custom_system_prompt_gets_brand():
    settings = Settings(brand_name="Bob", system_prompt="You are {brand}, a pirate.")
    assert settings.instructions == "You are Bob, a pirate."


def test_validate_reports_problems():
    errors = Settings(providers=("openai_chat", "bard"), upstream_timeout=0).validate()

    assert "unknown provider in PROVIDERS: bard" in errors
    assert "UPSTREAM_TIMEOUT must be > 0" in errors
    assert Settings().validate() == []


def test_rate_limiter_fixed_window():
    now = [1000.0]
    limiter = RateLimiter(2, 60, clock=lambda: now[0])

    assert limiter.hit("1.2.3.4").allowed
    second = limiter.hit("1.2.3.4")
    third = limiter.hit("1.2.3.4")

    assert second.allowed and second.remaining == 0
    assert not third.allowed
    assert limiter.hit("5.6.7.8").allowed

    now[0] += 60
    assert limiter.hit("1.2.3.4").allowed


def test_rate_limiter_disabled():
    limiter = RateLimiter(0, 0)

    assert not limiter.enabled
    assert limiter.hit("1.2.3.4") == (True, None, None)


def test_validate_reports_vendor_name_inside_brand():
    errors = Settings(brand_name="OpenAI Fan Club").validate()

    assert errors == ["BRAND_VENDOR_NAMES entry 'OpenAI' is part of BRAND_NAME and will not be replaced"]
