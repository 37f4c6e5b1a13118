"""Fallback chaining and diagnostics of ProviderCaller."""

import threading
import time

import httpx
import pytest

from askrelay.core.caller import ProviderCaller
from askrelay.services.providers import OpenAIChatProvider, OpenAIResponsesProvider, Provider
from askrelay.services.types import RawResult, UpstreamError


def test_primary_success_skips_fallback(make_provider):
    primary = make_provider("primary", [{"output_text": "hello"}])
    secondary = make_provider("secondary", [{"output_text": "unused"}])

    reply = ProviderCaller([primary, secondary]).ask("hi")

    assert reply == "hello"
    assert primary.calls == ["hi"]
    assert secondary.calls == []


def test_http_500_falls_back_to_secondary(make_provider):
    primary = make_provider("primary", [RawResult(ok=False, status_code=500, raw_body="boom")])
    secondary = make_provider("secondary", [{"choices": [{"message": {"content": "from fallback"}}]}])

    reply = ProviderCaller([primary, secondary]).ask("hi")

    assert reply == "from fallback"
    assert secondary.calls == ["hi"]


def test_network_error_falls_back_silently(make_provider):
    primary = make_provider("primary", [UpstreamError("timed out")])
    secondary = make_provider("secondary", [{"output_text": "ok"}])

    assert ProviderCaller([primary, secondary]).ask("hi") == "ok"


@pytest.mark.parametrize(
    "outcome",
    [
        RawResult(ok=True, status_code=200, raw_body="<html>gateway</html>"),
        RawResult(ok=True, status_code=200, raw_body=""),
        {"output": []},
    ],
)
def test_non_json_or_empty_primary_triggers_fallback(make_provider, outcome):
    primary = make_provider("primary", [outcome])
    secondary = make_provider("secondary", [{"output_text": "rescued"}])

    assert ProviderCaller([primary, secondary]).ask("hi") == "rescued"


def test_single_provider_http_error_returns_status_and_preview(make_provider):
    body = "x" * 500
    only = make_provider("only", [RawResult(ok=False, status_code=429, raw_body=body)], label="Upstream")

    reply = ProviderCaller([only], brand_name="SzalAI", preview_chars=160).ask("hi")

    assert reply.startswith("SzalAI: Upstream error (429) ")
    assert reply.endswith("x" * 160)
    assert "x" * 161 not in reply


def test_last_attempt_diagnostic_is_returned(make_provider):
    primary = make_provider("primary", [RawResult(ok=False, status_code=500, raw_body="first")], label="First")
    secondary = make_provider("secondary", [RawResult(ok=True, status_code=200, raw_body="nope")], label="Second")

    reply = ProviderCaller([primary, secondary]).ask("hi")

    assert reply == "SzalAI: Second returned non-JSON: nope"


def test_empty_reply_diagnostic(make_provider):
    only = make_provider("only", [{"choices": [{"message": {"content": "   "}}]}], label="Chat")

    assert ProviderCaller([only]).ask("hi") == "SzalAI: Chat returned an empty reply"


def test_network_error_on_last_attempt_becomes_diagnostic(make_provider):
    primary = make_provider("primary", [UpstreamError("dns")], label="First")
    secondary = make_provider("secondary", [UpstreamError("refused")], label="Second")

    reply = ProviderCaller([primary, secondary]).ask("hi")

    assert reply == "SzalAI: Second request failed (network error or timeout)"


def test_missing_credentials_make_no_calls(make_provider):
    primary = make_provider("primary", [], configured=False, credential_env="OPENAI_API_KEY")
    secondary = make_provider("secondary", [], configured=False, credential_env="POE_API_KEY")

    reply = ProviderCaller([primary, secondary]).ask("hi")

    assert "OPENAI_API_KEY" in reply
    assert reply.startswith("SzalAI: missing")
    assert primary.calls == [] and secondary.calls == []


def test_unconfigured_provider_is_skipped(make_provider):
    primary = make_provider("primary", [], configured=False)
    secondary = make_provider("secondary", [{"output_text": "second"}])

    assert ProviderCaller([primary, secondary]).ask("hi") == "second"
    assert primary.calls == []


def test_empty_chain():
    assert ProviderCaller([]).ask("hi") == "SzalAI: no upstream provider configured"


def test_chain_is_not_limited_to_two(make_provider):
    providers = [
        make_provider("a", [UpstreamError("x")]),
        make_provider("b", [RawResult(ok=False, status_code=503, raw_body="")]),
        make_provider("c", [{"output_text": "third time lucky"}]),
    ]

    assert ProviderCaller(providers).ask("hi") == "third time lucky"


def test_openai_missing_key_issues_no_http_request(mock_transport):
    http_client, seen = mock_transport()
    providers = [
        OpenAIResponsesProvider("", "gpt-4o-mini", "sys", 300, 15, http_client=http_client),
        OpenAIChatProvider("", "gpt-4o-mini", "sys", 300, 15, http_client=http_client),
    ]

    reply = ProviderCaller(providers).ask("hi")

    assert len(seen) == 0
    assert "OPENAI_API_KEY" in reply


def test_openai_responses_500_then_chat_success(mock_transport):
    http_client, seen = mock_transport(
        httpx.Response(500, text="upstream exploded"),
        httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": "Cześć!"}}]}),
    )
    providers = [
        OpenAIResponsesProvider("sk-test", "gpt-4o-mini", "sys", 300, 15, http_client=http_client),
        OpenAIChatProvider("sk-test", "gpt-4o-mini", "sys", 300, 15, http_client=http_client),
    ]

    reply = ProviderCaller(providers).ask("hej")

    assert reply == "Cześć!"
    assert [request.url.path for request in seen] == ["/v1/responses", "/v1/chat/completions"]


def test_openai_timeout_then_chat_success(mock_transport):
    http_client, seen = mock_transport(
        httpx.ReadTimeout("timed out"),
        httpx.Response(200, json={"choices": [{"message": {"content": "after timeout"}}]}),
    )
    providers = [
        OpenAIResponsesProvider("sk-test", "gpt-4o-mini", "sys", 300, 15, http_client=http_client),
        OpenAIChatProvider("sk-test", "gpt-4o-mini", "sys", 300, 15, http_client=http_client),
    ]

    assert ProviderCaller(providers).ask("hej") == "after timeout"
    assert len(seen) == 2


def test_attempt_over_its_deadline_falls_through(make_provider):
    release = threading.Event()

    class StuckProvider(Provider):
        name = "stuck"
        label = "Stuck"
        timeout = 0.2

        def is_configured(self):
            return True

        def generate(self, prompt):
            release.wait(5)
            return RawResult(ok=True, status_code=200, raw_body='{"output_text": "too late"}')

    secondary = make_provider("secondary", [{"output_text": "on time"}])

    start = time.monotonic()
    try:
        reply = ProviderCaller([StuckProvider(), secondary]).ask("hi")
    finally:
        release.set()

    assert reply == "on time"
    assert time.monotonic() - start < 2
