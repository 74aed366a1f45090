from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class YahooChartClient:
    """Chart endpoint client returning one symbol's quote meta and intraday history."""

    def __init__(
        self,
        base_url: str = "https://query1.finance.yahoo.com",
        session: Optional[Any] = None,
        *,
        range_: str = "1d",
        interval: str = "5m",
        timeout: float = 5.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests
        self.range = range_
        self.interval = interval
        self.timeout = timeout
        self.user_agent = user_agent

    def chart_url(self, symbol: str) -> str:
        return f"{self.base_url}/v8/finance/chart/{quote(symbol, safe='')}"

    def get_chart(self, symbol: str) -> Dict[str, Any]:
        response = self.session.get(
            self.chart_url(symbol),
            headers={"User-Agent": self.user_agent},
            params={"range": self.range, "interval": self.interval},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()
