"""Upstream providers behind one `generate(prompt) -> RawResult` capability."""
import json
import time
from http.client import HTTPException
from typing import Any, Callable, List, Optional
from urllib.error import HTTPError
from urllib.request import Request, urlopen

import httpx

from ..core.settings import Settings
from ..utils.logging import log_event
from .local_model import SingleFlight, load_llama
from .openai_service import create_client, create_raw_chat_completion, create_raw_response
from .types import RawResult, UpstreamError


class Provider:
    """One upstream that can turn a prompt into a raw response body."""

    name = ""
    label = ""
    credential_env = ""
    # Overall deadline for one generate() call in seconds; None is unbounded.
    timeout: Optional[float] = None

    def is_configured(self) -> bool:
        raise NotImplementedError

    def generate(self, prompt: str) -> RawResult:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


def _chat_messages(system_prompt: str, prompt: str) -> List[dict]:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": prompt},
    ]


class OpenAIResponsesProvider(Provider):
    name = "openai_responses"
    label = "OpenAI /responses"
    credential_env = "OPENAI_API_KEY"

    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        max_output_tokens: int,
        timeout: float,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.system_prompt = system_prompt
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self.base_url = base_url
        self.http_client = http_client
        self._openai = None

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _client(self):
        if self._openai is None:
            self._openai = create_client(self.api_key, self.base_url, self.timeout, http_client=self.http_client)
        return self._openai

    def generate(self, prompt: str) -> RawResult:
        return create_raw_response(
            self._client(),
            self.model,
            _chat_messages(self.system_prompt, prompt),
            self.max_output_tokens,
        )


class OpenAIChatProvider(OpenAIResponsesProvider):
    name = "openai_chat"
    label = "OpenAI /chat"

    def generate(self, prompt: str) -> RawResult:
        return create_raw_chat_completion(
            self._client(),
            self.model,
            _chat_messages(self.system_prompt, prompt),
            self.max_output_tokens,
        )


class PoeProvider(OpenAIChatProvider):
    """Poe exposes an OpenAI-compatible chat completions endpoint."""

    name = "poe"
    label = "Poe"
    credential_env = "POE_API_KEY"


def _read_until(stream, deadline: float) -> bytes:
    """Read a response body, giving up once `deadline` (monotonic) has passed."""
    chunks = []
    while True:
        if time.monotonic() > deadline:
            raise UpstreamError("upstream exceeded the overall deadline")
        chunk = stream.read1(65536)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


class GeminiProvider(Provider):
    name = "gemini"
    label = "Gemini"
    credential_env = "GEMINI_API_KEY"

    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        max_output_tokens: int,
        timeout: float,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
    ):
        self.api_key = api_key
        self.model = model
        self.system_prompt = system_prompt
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self.base_url = base_url

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def build_request(self, prompt: str) -> Request:
        url = f"{self.base_url.rstrip('/')}/models/{self.model}:generateContent"
        body = {
            "systemInstruction": {"parts": [{"text": self.system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": self.max_output_tokens},
        }
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }
        return Request(url, data=json.dumps(body).encode("utf-8"), headers=headers, method="POST")

    def _fetch(self, req: Request, deadline: float):
        try:
            resp = urlopen(req, timeout=self.timeout)
        except HTTPError as e:
            # non-2xx: the error carries the upstream body
            resp = e
        with resp:
            return resp.status, _read_until(resp, deadline)

    def generate(self, prompt: str) -> RawResult:
        req = self.build_request(prompt)
        deadline = time.monotonic() + self.timeout
        try:
            status, resp_body = self._fetch(req, deadline)
        except (OSError, HTTPException) as e:
            # URLError, socket timeouts and dropped connections, body reads included
            raise UpstreamError(str(e)) from e
        text = resp_body.decode("utf-8", errors="replace")
        return RawResult(ok=200 <= status < 300, status_code=status, raw_body=text)


class LocalModelProvider(Provider):
    """Small model running in-process; loaded on first use."""

    name = "local"
    label = "local model"
    credential_env = "LOCAL_MODEL_PATH"

    def __init__(
        self,
        model_path: str,
        system_prompt: str,
        max_output_tokens: int,
        context_length: int = 2048,
        loader: Optional[Callable[[], Any]] = None,
    ):
        self.model_path = model_path
        self.system_prompt = system_prompt
        self.max_output_tokens = max_output_tokens
        self._model = SingleFlight(loader or (lambda: load_llama(model_path, context_length)))
        self._has_loader = loader is not None

    def is_configured(self) -> bool:
        return bool(self.model_path) or self._has_loader

    def generate(self, prompt: str) -> RawResult:
        try:
            llm = self._model.get()
            result = llm.create_chat_completion(
                messages=_chat_messages(self.system_prompt, prompt),
                max_tokens=self.max_output_tokens,
            )
        except Exception as e:
            raise UpstreamError(f"local model failed: {e}") from e
        return RawResult(ok=True, status_code=200, raw_body=json.dumps(result, ensure_ascii=False))


def build_providers(settings: Settings, http_client: Optional[httpx.Client] = None) -> List[Provider]:
    """Instantiate the ordered provider chain named by `settings.providers`."""
    common = {
        "system_prompt": settings.instructions,
        "max_output_tokens": settings.max_output_tokens,
    }
    factories = {
        "openai_responses": lambda: OpenAIResponsesProvider(
            settings.openai_api_key,
            settings.openai_model,
            timeout=settings.upstream_timeout,
            base_url=settings.openai_base_url,
            http_client=http_client,
            **common,
        ),
        "openai_chat": lambda: OpenAIChatProvider(
            settings.openai_api_key,
            settings.openai_model,
            timeout=settings.upstream_timeout,
            base_url=settings.openai_base_url,
            http_client=http_client,
            **common,
        ),
        "poe": lambda: PoeProvider(
            settings.poe_api_key,
            settings.poe_model,
            timeout=settings.upstream_timeout,
            base_url=settings.poe_base_url,
            http_client=http_client,
            **common,
        ),
        "gemini": lambda: GeminiProvider(
            settings.gemini_api_key,
            settings.gemini_model,
            timeout=settings.upstream_timeout,
            base_url=settings.gemini_base_url,
            **common,
        ),
        "local": lambda: LocalModelProvider(
            settings.local_model_path,
            context_length=settings.local_model_context,
            **common,
        ),
    }
    providers = []
    for name in settings.providers:
        factory = factories.get(name)
        if factory is None:
            log_event(30, "unknown_provider", provider=name)
            continue
        providers.append(factory())
    return providers
