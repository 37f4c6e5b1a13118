"""Provider chain with fallback; failures come back as diagnostic text."""
import json
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Sequence, Tuple

from ..services.providers import Provider
from ..services.types import UpstreamError
from ..utils.logging import log_event
from ..utils.text import preview
from .normalizer import extract_reply


class ProviderCaller:
    """Ask each configured provider in order until one yields text.

    Every provider gets one attempt, bounded by the provider's `timeout` as
    an overall deadline. A non-success status, a non-JSON body, an empty
    extraction, a timeout or a network error moves on to the next provider.
    When all attempts fail the diagnostic of the last one is returned,
    prefixed with the brand tag. Nothing raises to the caller.
    """

    def __init__(
        self,
        providers: Sequence[Provider],
        brand_name: str = "SzalAI",
        preview_chars: int = 160,
        max_workers: int = 32,
    ):
        self.providers = list(providers)
        self.brand_name = brand_name
        self.preview_chars = preview_chars
        # Attempts run here so an abandoned one never blocks the request thread.
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="askrelay-upstream")

    def _diagnostic(self, text: str) -> str:
        return f"{self.brand_name}: {text}"

    def ask(self, message: str) -> str:
        if not self.providers:
            return self._diagnostic("no upstream provider configured")
        usable = []
        for provider in self.providers:
            if provider.is_configured():
                usable.append(provider)
            else:
                log_event(20, "upstream_skipped", provider=provider.name, missing=provider.credential_env)
        if not usable:
            return self._diagnostic(f"missing {self.providers[0].credential_env} in the environment")

        diagnostic = ""
        for provider in usable:
            text, diagnostic = self._attempt(provider, message)
            if text:
                return text
        return diagnostic

    def _generate(self, provider: Provider, message: str):
        future = self._executor.submit(provider.generate, message)
        try:
            return future.result(timeout=provider.timeout)
        except FutureTimeout:
            future.cancel()
            raise UpstreamError(f"no response within {provider.timeout}s") from None

    def _attempt(self, provider: Provider, message: str) -> Tuple[str, str]:
        """Return (reply, "") on success or ("", diagnostic) on failure."""
        start = time.monotonic()
        try:
            result = self._generate(provider, message)
        except UpstreamError as e:
            log_event(
                30,
                "upstream_failed",
                provider=provider.name,
                error=str(e),
                latency_ms=int((time.monotonic() - start) * 1000),
            )
            return "", self._diagnostic(f"{provider.label} request failed (network error or timeout)")

        latency_ms = int((time.monotonic() - start) * 1000)
        body_preview = preview(result.raw_body, self.preview_chars)
        log_event(
            20,
            "upstream_attempt",
            provider=provider.name,
            status=result.status_code,
            latency_ms=latency_ms,
        )
        if not result.ok:
            log_event(30, "upstream_failed", provider=provider.name, status=result.status_code, body=body_preview)
            return "", self._diagnostic(f"{provider.label} error ({result.status_code}) {body_preview}".rstrip())

        try:
            data = json.loads(result.raw_body)
        except ValueError:
            log_event(30, "upstream_failed", provider=provider.name, status=result.status_code, error="non-json")
            return "", self._diagnostic(f"{provider.label} returned non-JSON: {body_preview}".rstrip())

        text = extract_reply(data, result.raw_body)
        if not text:
            log_event(30, "upstream_empty", provider=provider.name)
            return "", self._diagnostic(f"{provider.label} returned an empty reply")
        return text, ""
