"""In-process llama.cpp model with single-flight lazy loading."""
import threading
import time
from concurrent.futures import Future
from typing import Any, Callable, Optional

from ..utils.logging import log_event


class SingleFlight:
    """Run `factory` at most once; concurrent first callers share the result.

    A failed load is handed to every caller that was waiting on it and then
    forgotten, so the next call tries again.
    """

    def __init__(self, factory: Callable[[], Any]):
        self._factory = factory
        self._lock = threading.Lock()
        self._future: Optional[Future] = None

    def get(self) -> Any:
        with self._lock:
            future = self._future
            owner = future is None
            if owner:
                future = Future()
                self._future = future
        if owner:
            try:
                value = self._factory()
            except Exception as exc:
                with self._lock:
                    self._future = None
                future.set_exception(exc)
                raise
            future.set_result(value)
        return future.result()

    @property
    def loaded(self) -> bool:
        future = self._future
        return future is not None and future.done() and future.exception() is None


def load_llama(model_path: str, context_length: int) -> Any:
    """Load a GGUF model with llama-cpp-python."""
    from llama_cpp import Llama

    start_time = time.monotonic()
    llm = Llama(model_path=model_path, n_ctx=context_length, verbose=False)
    log_event(
        20,
        "local_model_loaded",
        model_path=model_path,
        load_ms=int((time.monotonic() - start_time) * 1000),
    )
    return llm
