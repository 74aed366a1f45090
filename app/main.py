from __future__ import annotations

from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo

import requests
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import router
from app.config.settings import Settings, get_settings
from app.errors import GatewayError
from app.integrations.yahoo_chart import YahooChartClient
from app.integrations.yahoo_news import YahooNewsClient
from app.services.currency import SuffixCurrencyResolver
from app.services.news_feed import MarketNewsService
from app.services.quote_aggregator import QuoteAggregatorService


def build_quote_service(settings: Settings, session=None) -> QuoteAggregatorService:
    chart_client = YahooChartClient(
        base_url=settings.QUOTE_BASE_URL,
        session=session,
        range_=settings.QUOTE_RANGE,
        interval=settings.QUOTE_INTERVAL,
        timeout=settings.QUOTE_TIMEOUT_SEC,
        user_agent=settings.UPSTREAM_USER_AGENT,
    )
    return QuoteAggregatorService(
        chart_client=chart_client,
        currency_resolver=SuffixCurrencyResolver(
            settings.CURRENCY_SUFFIXES,
            base_currency=settings.BASE_CURRENCY,
        ),
        default_currency=settings.DEFAULT_CURRENCY,
        series_window=settings.SERIES_WINDOW,
        display_tz=ZoneInfo(settings.DISPLAY_TIMEZONE),
        max_workers=settings.QUOTE_MAX_WORKERS,
    )


def build_news_service(settings: Settings, session=None) -> MarketNewsService:
    news_client = YahooNewsClient(
        base_url=settings.NEWS_BASE_URL,
        session=session,
        timeout=settings.QUOTE_TIMEOUT_SEC,
        user_agent=settings.UPSTREAM_USER_AGENT,
    )
    return MarketNewsService(
        news_client=news_client,
        query=settings.NEWS_QUERY,
        limit=settings.NEWS_LIMIT,
    )


def _load_settings() -> Settings | None:
    try:
        return get_settings()
    except ValueError as exc:
        # pydantic ValidationError is a ValueError; serve 503s instead of failing import
        print(f"[APP][settings_invalid] error={exc}", flush=True)
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    print("[APP][startup] quote_provider_configured="
          f"{int(app.state.quote_aggregator_service is not None)}", flush=True)
    try:
        yield
    finally:
        app.state.http_session.close()
        print("[APP][shutdown] http_session=closed", flush=True)


_settings = _load_settings()

app = FastAPI(title="Stock Quote Gateway", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.CORS_ALLOW_ORIGINS if _settings else ["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)
app.include_router(router, prefix="/v1")


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": message or "INVALID_REQUEST"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    print(
        f"[APP][unhandled_error] path={request.url.path} "
        f"type={type(exc).__name__} error={exc}",
        flush=True,
    )
    return JSONResponse(status_code=500, content={"error": str(exc) or "INTERNAL_ERROR"})


# NOTE: services are None when settings failed validation; routes answer 503.
app.state.get_settings = get_settings
app.state.http_session = requests.Session()
app.state.quote_aggregator_service = (
    build_quote_service(_settings, app.state.http_session) if _settings else None
)
app.state.market_news_service = (
    build_news_service(_settings, app.state.http_session) if _settings else None
)
