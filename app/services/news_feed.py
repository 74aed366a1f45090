from __future__ import annotations

from datetime import datetime, timezone

from app.errors import NewsUnavailableError
from app.schemas.news import NewsItem

SUMMARY_FALLBACK_CHARS = 150
DEFAULT_NEWS_SOURCE = "Yahoo Finance"
DEFAULT_NEWS_CATEGORY = "Market"


def _publish_date(raw) -> str:
    try:
        ts = int(raw)
    except (TypeError, ValueError):
        return datetime.now(timezone.utc).date().isoformat()
    return datetime.fromtimestamp(ts, timezone.utc).date().isoformat()


def to_news_item(position: int, raw: dict) -> NewsItem | None:
    title = str(raw.get("title") or "").strip()
    if not title:
        return None

    summary = str(raw.get("summary") or "").strip()
    if not summary:
        summary = title[:SUMMARY_FALLBACK_CHARS] + "..."

    related = raw.get("relatedTickers")
    category = DEFAULT_NEWS_CATEGORY
    if isinstance(related, list) and related and str(related[0]).strip():
        category = str(related[0]).strip()

    return NewsItem(
        id=position,
        title=title,
        summary=summary,
        date=_publish_date(raw.get("providerPublishTime")),
        source=str(raw.get("publisher") or "").strip() or DEFAULT_NEWS_SOURCE,
        category=category,
        url=raw.get("link") or None,
    )


class MarketNewsService:
    def __init__(self, *, news_client, query: str = "stock market", limit: int = 6) -> None:
        self.news_client = news_client
        self.query = query
        self.limit = limit

    def get_news(self) -> list[NewsItem]:
        try:
            raw_items = self.news_client.search_news(self.query, count=max(self.limit, 10))
        except Exception as exc:
            print(f"[NEWS][fetch_error] query={self.query!r} error={exc}", flush=True)
            raise NewsUnavailableError("NEWS_UPSTREAM_UNAVAILABLE") from exc

        items: list[NewsItem] = []
        for raw in raw_items:
            item = to_news_item(len(items) + 1, raw)
            if item is None:
                continue
            items.append(item)
            if len(items) >= self.limit:
                break

        if not items:
            raise NewsUnavailableError("NEWS_FEED_EMPTY")

        print(f"[NEWS][fetch_ok] query={self.query!r} count={len(items)}", flush=True)
        return items
