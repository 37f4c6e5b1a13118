"""Pytest configuration and fixtures."""

import json
from dataclasses import replace

import httpx
import pytest

from askrelay.core.app import create_app
from askrelay.core.settings import Settings
from askrelay.services.providers import Provider
from askrelay.services.types import RawResult


class FakeProvider(Provider):
    """Provider that replays scripted outcomes and records prompts.

    Outcomes are RawResult values, exceptions to raise, or JSON-able payloads
    returned as a 200 body.
    """

    def __init__(self, name, outcomes, configured=True, label=None, credential_env="FAKE_API_KEY"):
        self.name = name
        self.label = label or name
        self.credential_env = credential_env
        self.configured = configured
        self.outcomes = list(outcomes)
        self.calls = []

    def is_configured(self):
        return self.configured

    def generate(self, prompt):
        self.calls.append(prompt)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, (dict, list)):
            return ok_json(outcome)
        return outcome


def ok_json(payload, status=200):
    return RawResult(ok=True, status_code=status, raw_body=json.dumps(payload))


@pytest.fixture
def make_provider():
    return FakeProvider


@pytest.fixture
def settings():
    return Settings(
        openai_api_key="sk-test",
        rate_limit_requests=0,
        rate_limit_window_seconds=0,
    )


@pytest.fixture
def make_client(settings):
    """Build a Flask test client around the given providers."""

    def _make(provider_list, /, **overrides):
        cfg = replace(settings, **overrides) if overrides else settings
        app = create_app(cfg, providers=provider_list)
        app.config["TESTING"] = True
        return app.test_client()

    return _make


@pytest.fixture
def mock_transport():
    """httpx client whose requests go to a scripted handler.

    Returns (client, requests) where `requests` collects every httpx.Request.
    Scripted items are consumed in order: an httpx.Response, an exception to
    raise, or a callable taking the request.
    """

    def _make(*responses):
        queue = list(responses)
        seen = []

        def handler(request):
            seen.append(request)
            item = queue.pop(0)
            if isinstance(item, BaseException):
                raise item
            if callable(item):
                return item(request)
            return item

        return httpx.Client(transport=httpx.MockTransport(handler)), seen

    return _make
