"""Pure policy functions for the sales data loader.

Everything here is free of I/O so strategy selection, cache keys and the
truncation heuristic can be tested without a store.
"""

import hashlib
import math
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

DEFAULT_ALL_SENTINELS: frozenset[str] = frozenset(
    {"all", "all brands", "all brands (company total)", "all channels"}
)
SERVER_ROW_CAP = 1000
SUSPICIOUS_WINDOW_DAYS = 90
ALL = "all"

CACHE_KEY_FIELDS: tuple[str, ...] = (
    "start_date",
    "end_date",
    "brand",
    "channel",
    "sku",
    "view",
    "group_by",
)


def _field(filters: Any, name: str) -> Any:
    if isinstance(filters, Mapping):
        return filters.get(name)
    return getattr(filters, name, None)


def normalize_filter_value(
    value: Any,
    sentinels: Iterable[str] = DEFAULT_ALL_SENTINELS,
) -> str | None:
    """Return the trimmed filter value, or None when it means "no filter".

    Args:
        value: Raw brand/channel/sku value.
        sentinels: Lowercased values that mean "all".

    Returns:
        Trimmed value, or None for missing, blank or sentinel input.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in sentinels:
        return None
    return text


def create_cache_key(
    prefix: str,
    filters: Any,
    sentinels: Iterable[str] = DEFAULT_ALL_SENTINELS,
) -> str:
    """Build a deterministic cache key from a filter set.

    Missing and sentinel values normalize to ``"all"`` so "All Brands" and
    an absent brand share one entry.

    Args:
        prefix: Operation name, e.g. ``"sales"`` or ``"agg"``.
        filters: SalesFilters instance or mapping with the same fields.
        sentinels: Lowercased values that mean "all".

    Returns:
        Key of the form ``prefix|field=value|...``.
    """
    sentinels = frozenset(sentinels)
    parts = [prefix]
    for name in CACHE_KEY_FIELDS:
        raw = _field(filters, name)
        if isinstance(raw, date):
            value = raw.isoformat()
        else:
            value = normalize_filter_value(raw, sentinels) or ALL
        parts.append(f"{name}={value}")
    return "|".join(parts)


def window_days(start_date: date | None, end_date: date | None) -> int | None:
    """Inclusive length of the window in days, None when either side is open."""
    if start_date is None or end_date is None:
        return None
    return (end_date - start_date).days + 1


def is_suspicious_limit(
    row_count: int,
    filters: Any,
    row_cap: int = SERVER_ROW_CAP,
    window_cutoff_days: int = SUSPICIOUS_WINDOW_DAYS,
) -> bool:
    """Decide whether a result may have been truncated by the server row cap.

    A result counts as suspicious when it holds exactly ``row_cap`` rows and
    the query spans more than ``window_cutoff_days`` or an annual view. An
    open-ended window counts as wide.

    Args:
        row_count: Rows the store returned.
        filters: Filters the query ran with.
        row_cap: Server-side maximum rows per response.
        window_cutoff_days: Window size above which a full page is suspect.

    Returns:
        True if the result should be re-fetched with pagination.
    """
    if row_count != row_cap:
        return False
    if _field(filters, "view") == "annual":
        return True
    days = window_days(_field(filters, "start_date"), _field(filters, "end_date"))
    return days is None or days > window_cutoff_days


def should_use_aggregation(
    filters: Any,
    sentinels: Iterable[str] = DEFAULT_ALL_SENTINELS,
) -> bool:
    """Whether a request should be served by the aggregation procedures.

    Annual views, and quarterly views scoped to one brand, are wide enough
    that row fetches would hit the server cap. Both dates are required.
    """
    if _field(filters, "start_date") is None or _field(filters, "end_date") is None:
        return False
    view = _field(filters, "view")
    if view == "annual":
        return True
    if view == "quarterly":
        return normalize_filter_value(_field(filters, "brand"), frozenset(sentinels)) is not None
    return False


def coerce_revenue(value: Any) -> float:
    """Coerce a revenue value to float; unparseable input becomes 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "").replace("$", "")
        try:
            number = float(text)
        except ValueError:
            return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def coerce_day(value: Any) -> str:
    """Coerce a date-like value to a ``YYYY-MM-DD`` string.

    Accepts date/datetime objects, ISO strings with a ``T`` time part and
    strings with a space-separated time part.

    Raises:
        ValueError: If the value does not start with a valid ISO date.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value or "").strip()
    day = text.split("T", 1)[0].split(" ", 1)[0]
    try:
        return date.fromisoformat(day).isoformat()
    except ValueError as exc:
        msg = f"Invalid date {value!r}; expected YYYY-MM-DD"
        raise ValueError(msg) from exc


def build_source_id(*parts: Any) -> str:
    """Deterministic external id for a row from its natural key parts.

    Parts are trimmed and lowercased so re-uploading the same logical row
    under different casing maps to the same id. The id is the 64-character
    sha256 hex digest, matching the width of the ``source_id`` column.
    """
    material = "|".join(str(part if part is not None else "").strip().lower() for part in parts)
    return hashlib.sha256(material.encode("utf-8")).hexdigest()
