from fastapi import APIRouter, Query, Request

from app.errors import QuoteProviderNotConfiguredError
from app.schemas.news import NewsResponse
from app.schemas.quote import StockDataRequest, StockDataResponse
from app.services.quote_aggregator import QuoteAggregatorService

router = APIRouter()


def _quote_service(request: Request) -> QuoteAggregatorService:
    service = getattr(request.app.state, 'quote_aggregator_service', None)
    if service is None:
        raise QuoteProviderNotConfiguredError('QUOTE_PROVIDER_NOT_CONFIGURED')
    return service


def _stock_data(service: QuoteAggregatorService, symbols: list[str]) -> StockDataResponse:
    batch = service.get_stock_data(symbols)
    return StockDataResponse(stock_data=batch.records, currency=batch.currency)


@router.post('/stock-data', response_model=StockDataResponse)
def get_stock_data(req: StockDataRequest, request: Request):
    return _stock_data(_quote_service(request), req.symbols)


@router.get('/quotes', response_model=StockDataResponse)
def get_quotes(request: Request, symbols: str = Query(...)):
    req = [s.strip() for s in symbols.split(',') if s.strip()]
    return _stock_data(_quote_service(request), req)


@router.get('/news', response_model=NewsResponse)
def get_market_news(request: Request):
    service = getattr(request.app.state, 'market_news_service', None)
    if service is None:
        raise QuoteProviderNotConfiguredError('NEWS_PROVIDER_NOT_CONFIGURED')
    return NewsResponse(news=service.get_news())


@router.get('/metrics/quote')
def quote_metrics(request: Request):
    return _quote_service(request).metrics()
