from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from app.integrations.yahoo_chart import DEFAULT_USER_AGENT


class YahooNewsClient:
    """Search endpoint client used for the general market news feed."""

    def __init__(
        self,
        base_url: str = "https://query2.finance.yahoo.com",
        session: Optional[Any] = None,
        *,
        timeout: float = 5.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests
        self.timeout = timeout
        self.user_agent = user_agent

    def search_news(self, query: str, count: int = 10) -> List[Dict[str, Any]]:
        response = self.session.get(
            f"{self.base_url}/v1/finance/search",
            headers={"User-Agent": self.user_agent},
            params={
                "q": query,
                "quotesCount": 0,
                "newsCount": count,
                "enableFuzzyQuery": "false",
                "newsQueryConfiguration.quoteFeed": "VIDEO,STORY",
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload = response.json()
        news = payload.get("news") if isinstance(payload, dict) else None
        if not isinstance(news, list):
            return []
        return [item for item in news if isinstance(item, dict)]
