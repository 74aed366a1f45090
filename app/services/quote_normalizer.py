from __future__ import annotations

import math
from datetime import datetime, timezone, tzinfo
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.schemas.quote import QuoteRecord, SeriesPoint
from app.services.currency import CurrencyResolver

SERIES_WINDOW = 20
DISPLAY_TIME_FORMAT = "%I:%M %p"


def _to_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _to_int(value: Any) -> int | None:
    number = _to_float(value)
    if number is None:
        return None
    return int(number)


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _first_dict(items: Any) -> dict | None:
    if not isinstance(items, list) or not items:
        return None
    head = items[0]
    if not isinstance(head, dict):
        return None
    return head


def _resolve_tz(name: str | None, fallback: tzinfo) -> tzinfo:
    if not name:
        return fallback
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return fallback


def compute_change(price: float, previous_close: float) -> tuple[float, float]:
    """Return ``(change, change_percent)``; percent is 0.0 when it cannot be finite."""
    change = price - previous_close
    if previous_close == 0:
        return change, 0.0
    change_percent = change / previous_close * 100
    # subnormal closes overflow to inf
    if not math.isfinite(change_percent):
        return change, 0.0
    return change, change_percent


def build_series(
    timestamps: Any,
    closes: Any,
    *,
    window: int = SERIES_WINDOW,
    tz: tzinfo = timezone.utc,
) -> tuple[SeriesPoint, ...]:
    """Pair timestamps with closes by index, keep the latest ``window`` samples
    in ascending time order, and drop samples without a strictly positive price.

    Windowing happens before filtering, so a window full of gaps yields fewer
    points rather than reaching further back in time.
    """
    if not isinstance(timestamps, list) or not isinstance(closes, list):
        return ()

    samples: list[tuple[int, Any]] = []
    for raw_ts, raw_price in zip(timestamps, closes):
        ts = _to_int(raw_ts)
        if ts is None:
            continue
        samples.append((ts, raw_price))
    samples.sort(key=lambda sample: sample[0])

    points: list[SeriesPoint] = []
    for ts, raw_price in samples[-window:]:
        price = _to_float(raw_price)
        if price is None or price <= 0:
            continue
        try:
            label = datetime.fromtimestamp(ts, tz).strftime(DISPLAY_TIME_FORMAT)
        except (OverflowError, OSError, ValueError):
            continue
        points.append(SeriesPoint(ts=ts, time=label, price=price))
    return tuple(points)


def normalize_chart_payload(
    symbol: str,
    payload: Any,
    *,
    currency_resolver: CurrencyResolver,
    window: int = SERIES_WINDOW,
    display_tz: tzinfo = timezone.utc,
) -> QuoteRecord | None:
    """Map one chart payload to a QuoteRecord, or None when it is unusable."""
    if not isinstance(payload, dict):
        return None
    chart = payload.get("chart")
    if not isinstance(chart, dict):
        return None
    result = _first_dict(chart.get("result"))
    if result is None:
        return None

    meta = result.get("meta")
    if not isinstance(meta, dict) or not meta:
        return None
    indicators = result.get("indicators")
    quote = _first_dict(indicators.get("quote")) if isinstance(indicators, dict) else None
    # an empty quote block is a placeholder, not a zero-priced instrument
    if not quote:
        return None

    price = _to_float(meta.get("regularMarketPrice"))
    if price is None or price <= 0:
        return None

    previous_close = _to_float(meta.get("previousClose"))
    if previous_close is None:
        previous_close = _to_float(meta.get("chartPreviousClose"))
    if previous_close is None or previous_close < 0:
        previous_close = price
    change, change_percent = compute_change(price, previous_close)

    currency = _text(meta.get("currency")) or currency_resolver.resolve(symbol)
    display_name = (
        _text(meta.get("shortName"))
        or _text(meta.get("longName"))
        or currency_resolver.strip_suffix(_text(meta.get("symbol")) or symbol)
    )
    tz = _resolve_tz(_text(meta.get("exchangeTimezoneName")), display_tz)

    return QuoteRecord(
        symbol=symbol,
        display_name=display_name,
        price=price,
        previous_close=previous_close,
        change=change,
        change_percent=change_percent,
        currency=currency,
        series=build_series(result.get("timestamp"), quote.get("close"), window=window, tz=tz),
        market_state=_text(meta.get("marketState")),
        exchange=_text(meta.get("exchangeName")),
    )
