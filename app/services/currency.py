from __future__ import annotations

from typing import Mapping, Protocol

DEFAULT_SUFFIX_CURRENCIES = {".NS": "INR", ".BO": "INR"}
BASE_CURRENCY = "USD"


class CurrencyResolver(Protocol):
    def resolve(self, symbol: str) -> str: ...

    def strip_suffix(self, symbol: str) -> str: ...


class SuffixCurrencyResolver:
    """Infer a listing currency from exchange suffixes like ``TCS.NS``."""

    def __init__(
        self,
        suffix_currencies: Mapping[str, str] | None = None,
        base_currency: str = BASE_CURRENCY,
    ) -> None:
        source = DEFAULT_SUFFIX_CURRENCIES if suffix_currencies is None else suffix_currencies
        # longest suffix first so ".XNSE" wins over ".NSE" style overlaps
        self._suffixes = sorted(
            ((s.upper(), c.upper()) for s, c in source.items()),
            key=lambda item: len(item[0]),
            reverse=True,
        )
        self.base_currency = base_currency.upper()

    def _match(self, symbol: str) -> tuple[str, str] | None:
        upper = symbol.upper()
        for suffix, currency in self._suffixes:
            if upper.endswith(suffix) and len(upper) > len(suffix):
                return suffix, currency
        return None

    def resolve(self, symbol: str) -> str:
        matched = self._match(symbol)
        if matched is None:
            return self.base_currency
        return matched[1]

    def strip_suffix(self, symbol: str) -> str:
        matched = self._match(symbol)
        if matched is None:
            return symbol
        return symbol[: -len(matched[0])]
