from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SeriesPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    ts: int
    time: str
    price: float = Field(gt=0)


class QuoteRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    symbol: str
    display_name: str
    price: float = Field(ge=0)
    previous_close: float = Field(ge=0)
    change: float
    change_percent: float
    currency: str
    series: tuple[SeriesPoint, ...] = ()
    market_state: str | None = None
    exchange: str | None = None


class QuoteBatch(BaseModel):
    records: list[QuoteRecord]
    currency: str


class StockDataRequest(BaseModel):
    symbols: list[str]


class StockDataResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stock_data: list[QuoteRecord] = Field(alias="stockData")
    currency: str
