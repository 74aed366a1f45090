from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import timezone, tzinfo
from typing import Any

from app.errors import InvalidSymbolsError
from app.schemas.quote import QuoteBatch, QuoteRecord
from app.services.currency import CurrencyResolver, SuffixCurrencyResolver
from app.services.quote_normalizer import SERIES_WINDOW, normalize_chart_payload

DEFAULT_BATCH_CURRENCY = "INR"


class QuoteAggregatorService:
    """Concurrent multi-symbol chart fetch with per-symbol failure isolation."""

    def __init__(
        self,
        *,
        chart_client,
        currency_resolver: CurrencyResolver | None = None,
        default_currency: str = DEFAULT_BATCH_CURRENCY,
        series_window: int = SERIES_WINDOW,
        display_tz: tzinfo = timezone.utc,
        max_workers: int = 0,
    ) -> None:
        self.chart_client = chart_client
        self.currency_resolver = currency_resolver or SuffixCurrencyResolver()
        self.default_currency = default_currency
        self.series_window = series_window
        self.display_tz = display_tz
        self.max_workers = max_workers

        self._lock = threading.Lock()
        self.batches = 0
        self.symbols_requested = 0
        self.symbols_resolved = 0
        self.symbols_absent = 0
        self.last_batch_target = 0
        self.last_batch_final = 0
        self.last_batch_elapsed_ms = 0.0

    @staticmethod
    def _unique_symbols(symbols: list[str]) -> list[str]:
        unique_symbols: list[str] = []
        seen: set[str] = set()
        for symbol in symbols:
            if not isinstance(symbol, str):
                continue
            value = symbol.strip()
            if not value or value in seen:
                continue
            seen.add(value)
            unique_symbols.append(value)
        return unique_symbols

    @staticmethod
    def _status_code_from_error(exc: Exception) -> int | None:
        response = getattr(exc, "response", None)
        code = getattr(response, "status_code", None)
        if isinstance(code, int):
            return code
        return None

    def _fetch_one(self, symbol: str) -> QuoteRecord | None:
        try:
            payload: Any = self.chart_client.get_chart(symbol)
        except Exception as exc:
            print(
                f"[QUOTE][symbol_absent] symbol={symbol} "
                f"status={self._status_code_from_error(exc)} error={exc}",
                flush=True,
            )
            return None

        try:
            record = normalize_chart_payload(
                symbol,
                payload,
                currency_resolver=self.currency_resolver,
                window=self.series_window,
                display_tz=self.display_tz,
            )
        except Exception as exc:
            print(f"[QUOTE][symbol_absent] symbol={symbol} error=normalize_failed:{exc}", flush=True)
            return None

        if record is None:
            print(f"[QUOTE][symbol_absent] symbol={symbol} error=unusable_payload", flush=True)
            return None
        return record

    def _worker_count(self, target_count: int) -> int:
        if self.max_workers > 0:
            return min(self.max_workers, target_count)
        return target_count

    def fetch_all(self, symbols: list[str]) -> list[QuoteRecord | None]:
        """One outcome slot per symbol, in request order; None marks an absent symbol."""
        slots: list[QuoteRecord | None] = [None] * len(symbols)
        if not symbols:
            return slots
        with ThreadPoolExecutor(
            max_workers=self._worker_count(len(symbols)),
            thread_name_prefix="quote-fetch",
        ) as executor:
            futures = [executor.submit(self._fetch_one, symbol) for symbol in symbols]
            for index, future in enumerate(futures):
                slots[index] = future.result()
        return slots

    def assemble(self, slots: list[QuoteRecord | None]) -> QuoteBatch:
        records = [record for record in slots if record is not None]
        currency = records[0].currency if records else self.default_currency
        return QuoteBatch(records=records, currency=currency)

    def get_stock_data(self, symbols: list[str]) -> QuoteBatch:
        unique_symbols = self._unique_symbols(symbols)
        if not unique_symbols:
            raise InvalidSymbolsError("SYMBOLS_REQUIRED")

        started = time.perf_counter()
        batch = self.assemble(self.fetch_all(unique_symbols))
        elapsed_ms = (time.perf_counter() - started) * 1000.0

        target_count = len(unique_symbols)
        final_count = len(batch.records)
        with self._lock:
            self.batches += 1
            self.symbols_requested += target_count
            self.symbols_resolved += final_count
            self.symbols_absent += target_count - final_count
            self.last_batch_target = target_count
            self.last_batch_final = final_count
            self.last_batch_elapsed_ms = round(elapsed_ms, 3)

        print(
            "[QUOTE][batch_resolve] "
            f"target_count={target_count} final_count={final_count} "
            f"absent_count={target_count - final_count} currency={batch.currency} "
            f"elapsed_ms={elapsed_ms:.1f}",
            flush=True,
        )
        return batch

    def metrics(self) -> dict[str, int | float]:
        with self._lock:
            return {
                "batches": self.batches,
                "symbols_requested": self.symbols_requested,
                "symbols_resolved": self.symbols_resolved,
                "symbols_absent": self.symbols_absent,
                "batch_target_count": self.last_batch_target,
                "batch_final_count": self.last_batch_final,
                "batch_elapsed_ms": self.last_batch_elapsed_ms,
            }
