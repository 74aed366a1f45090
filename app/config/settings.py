import os
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from app.integrations.yahoo_chart import DEFAULT_USER_AGENT


def _parse_csv(raw: str) -> list[str]:
    return [s.strip() for s in raw.split(",") if s.strip()]


def _parse_suffix_map(raw: str) -> dict[str, str]:
    out: dict[str, str] = {}
    for item in _parse_csv(raw):
        suffix, sep, currency = item.partition("=")
        if not sep or not suffix.strip() or not currency.strip():
            raise ValueError(f"invalid CURRENCY_SUFFIXES entry: {item!r}")
        out[suffix.strip().upper()] = currency.strip().upper()
    return out


class Settings(BaseModel):
    QUOTE_BASE_URL: str = "https://query1.finance.yahoo.com"
    QUOTE_RANGE: str = "1d"
    QUOTE_INTERVAL: str = "5m"
    QUOTE_TIMEOUT_SEC: float = Field(default=5.0, gt=0)
    QUOTE_MAX_WORKERS: int = Field(default=0, ge=0)
    SERIES_WINDOW: int = Field(default=20, gt=0)
    BASE_CURRENCY: str = "USD"
    DEFAULT_CURRENCY: str = "INR"
    CURRENCY_SUFFIXES: dict[str, str] = Field(default_factory=lambda: {".NS": "INR", ".BO": "INR"})
    DISPLAY_TIMEZONE: str = "UTC"
    NEWS_BASE_URL: str = "https://query2.finance.yahoo.com"
    NEWS_QUERY: str = "stock market"
    NEWS_LIMIT: int = Field(default=6, gt=0)
    CORS_ALLOW_ORIGINS: list[str] = Field(default_factory=lambda: ["*"])
    UPSTREAM_USER_AGENT: str = DEFAULT_USER_AGENT

    @field_validator("BASE_CURRENCY", "DEFAULT_CURRENCY")
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("DISPLAY_TIMEZONE")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {value}") from exc
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        # only pass what is set so model defaults apply to the rest
        raw: dict = {}
        for name in (
            "QUOTE_BASE_URL",
            "QUOTE_RANGE",
            "QUOTE_INTERVAL",
            "QUOTE_TIMEOUT_SEC",
            "QUOTE_MAX_WORKERS",
            "SERIES_WINDOW",
            "BASE_CURRENCY",
            "DEFAULT_CURRENCY",
            "DISPLAY_TIMEZONE",
            "NEWS_BASE_URL",
            "NEWS_QUERY",
            "NEWS_LIMIT",
            "UPSTREAM_USER_AGENT",
        ):
            value = os.getenv(name)
            if value is not None and value.strip():
                raw[name] = value.strip()

        raw_suffixes = os.getenv("CURRENCY_SUFFIXES")
        if raw_suffixes is not None and raw_suffixes.strip():
            raw["CURRENCY_SUFFIXES"] = _parse_suffix_map(raw_suffixes)

        raw_origins = os.getenv("CORS_ALLOW_ORIGINS")
        if raw_origins is not None:
            origins = _parse_csv(raw_origins)
            if origins:
                raw["CORS_ALLOW_ORIGINS"] = origins

        return cls.model_validate(raw)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
