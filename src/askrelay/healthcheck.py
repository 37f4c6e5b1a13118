"""Container healthcheck entrypoint."""
import os
import urllib.request


def main() -> int:
    """Return exit code 0 if /healthz is reachable."""
    port = int(os.getenv("PORT", "3000"))
    try:
        urllib.request.urlopen(f"http://127.0.0.1:{port}/healthz", timeout=2)
        return 0
    except OSError:
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
