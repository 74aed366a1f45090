from pydantic import BaseModel


class NewsItem(BaseModel):
    id: int
    title: str
    summary: str
    date: str
    source: str
    category: str
    url: str | None = None


class NewsResponse(BaseModel):
    news: list[NewsItem]
