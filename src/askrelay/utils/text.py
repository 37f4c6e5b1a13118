"""Brand substitution and text-safety helpers."""
import re
from functools import lru_cache
from typing import Iterable, Optional, Tuple

from .logging import log_event


@lru_cache(maxsize=32)
def _vendor_pattern(brand_name: str, vendor_names: Tuple[str, ...]) -> Optional[re.Pattern]:
    brand_lower = brand_name.lower()
    # A vendor name inside the brand would be replaced again on a second pass.
    names = [name for name in vendor_names if name and name.lower() not in brand_lower]
    skipped = [name for name in vendor_names if name and name.lower() in brand_lower]
    if skipped:
        log_event(30, "brand_vendor_skipped", brand=brand_name, vendor_names=skipped)
    if not names:
        return None
    names.sort(key=len, reverse=True)
    return re.compile("|".join(re.escape(name) for name in names), re.IGNORECASE)


def brand_swap(text, brand_name: str, vendor_names: Iterable[str]) -> str:
    """Replace every vendor name in `text` with `brand_name`, ignoring case."""
    value = "" if text is None else str(text)
    pattern = _vendor_pattern(brand_name, tuple(vendor_names))
    if pattern is None:
        return value
    return pattern.sub(lambda _match: brand_name, value)


def truncate_message(message: str, limit: int) -> str:
    """Trim surrounding whitespace and cut to at most `limit` characters."""
    return message.strip()[:limit]


def preview(text, limit: int = 160) -> str:
    """Short single-line preview of an upstream body for diagnostics."""
    value = "" if text is None else str(text)
    return " ".join(value[:limit].split())
