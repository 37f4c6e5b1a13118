"""Values shared by every provider."""
from dataclasses import dataclass


@dataclass(frozen=True)
class RawResult:
    """Outcome of one upstream call, body kept as text."""

    ok: bool
    status_code: int
    raw_body: str


class UpstreamError(Exception):
    """The call itself failed: timeout, DNS, refused connection, model load."""
