"""OpenAI SDK helpers that keep the upstream body as raw text."""
import time
from typing import Any, Iterator, List, Optional

import httpx
import openai

from .types import RawResult, UpstreamError


class _DeadlineStream(httpx.SyncByteStream):
    def __init__(self, stream, deadline: float, request: httpx.Request):
        self._stream = stream
        self._deadline = deadline
        self._request = request

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self._stream:
            if time.monotonic() > self._deadline:
                raise httpx.ReadTimeout("upstream exceeded the overall deadline", request=self._request)
            yield chunk

    def close(self) -> None:
        self._stream.close()


class DeadlineTransport(httpx.BaseTransport):
    """Abort a response whose body is still arriving after `timeout` seconds.

    httpx timeouts apply per socket operation, so a body sent one byte at a
    time never trips them.
    """

    def __init__(self, transport: httpx.BaseTransport, timeout: float):
        self._transport = transport
        self.timeout = timeout

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        deadline = time.monotonic() + self.timeout
        response = self._transport.handle_request(request)
        response.stream = _DeadlineStream(response.stream, deadline, request)
        return response

    def close(self) -> None:
        self._transport.close()


def create_client(
    api_key: str,
    base_url: Optional[str],
    timeout: float,
    http_client: Optional[httpx.Client] = None,
) -> openai.OpenAI:
    """Create an OpenAI-compatible client with a hard timeout and no SDK retries."""
    if http_client is None:
        http_client = openai.DefaultHttpxClient(transport=DeadlineTransport(httpx.HTTPTransport(), timeout))
    kwargs: dict = {"api_key": api_key, "timeout": timeout, "max_retries": 0, "http_client": http_client}
    if base_url:
        kwargs["base_url"] = base_url
    return openai.OpenAI(**kwargs)


def _raw_call(create, **kwargs: Any) -> RawResult:
    try:
        response = create(**kwargs)
    except openai.APIStatusError as e:
        return RawResult(ok=False, status_code=e.status_code, raw_body=e.response.text)
    except openai.APIConnectionError as e:
        raise UpstreamError(str(e)) from e
    return RawResult(ok=True, status_code=response.status_code, raw_body=response.text)


def create_raw_response(
    client: openai.OpenAI, model: str, input_messages: List[dict], max_output_tokens: int
) -> RawResult:
    """Call responses.create and return the undecoded body."""
    return _raw_call(
        client.responses.with_raw_response.create,
        model=model,
        input=input_messages,
        max_output_tokens=max_output_tokens,
    )


def create_raw_chat_completion(
    client: openai.OpenAI, model: str, messages: List[dict], max_tokens: int
) -> RawResult:
    """Call chat.completions.create and return the undecoded body."""
    return _raw_call(
        client.chat.completions.with_raw_response.create,
        model=model,
        messages=messages,
        max_tokens=max_tokens,
    )
