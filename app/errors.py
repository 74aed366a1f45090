from __future__ import annotations


class GatewayError(Exception):
    """Batch-level failure surfaced to the HTTP caller."""

    status_code = 500

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


class InvalidSymbolsError(GatewayError):
    status_code = 400


class QuoteProviderNotConfiguredError(GatewayError):
    status_code = 503


class NewsUnavailableError(GatewayError):
    status_code = 502
