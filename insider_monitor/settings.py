from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        enable_decoding=False,
    )

    ENV: str = "dev"
    MOCK_DATA: bool = False
    USE_POSTGRES: bool = False
    DATABASE_URL: str = "sqlite:///./insider_monitor.db"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    CORS_ALLOW_ORIGINS: list[str] = [
        "http://localhost:5000",
        "http://localhost:3000",
        "http://127.0.0.1:5000",
    ]

    POLYMARKET_GAMMA_URL: str = "https://gamma-api.polymarket.com"
    POLYMARKET_DATA_URL: str = "https://data-api.polymarket.com"
    POLY_HTTP_TIMEOUT_SECONDS: float = 15.0
    POLY_CACHE_TTL_SECONDS: int = 300
    POLY_MARKETS_LIMIT: int = 50
    POLY_RECENT_TRADES_LIMIT: int = 2000
    DATA_REFRESH_INTERVAL_SECONDS: int = 300

    FMP_API_KEY: str | None = None
    FMP_BASE_URL: str = "https://financialmodelingprep.com/api/v3"
    FMP_DAILY_REQUEST_LIMIT: int = 240
    EARNINGS_CACHE_TTL_SECONDS: int = 1800
    EARNINGS_REFRESH_INTERVAL_SECONDS: int = 600
    EARNINGS_LOOKAHEAD_DAYS: int = 30

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    HTTPX_SLOW_REQUEST_THRESHOLD_SECONDS: float = 2.0

    @field_validator("FMP_API_KEY", mode="before")
    @classmethod
    def _empty_str_to_none(cls, value):
        if isinstance(value, str) and value.strip().lower() in {"", "none", "null"}:
            return None
        return value

    @field_validator(
        "POLY_CACHE_TTL_SECONDS",
        "DATA_REFRESH_INTERVAL_SECONDS",
        "EARNINGS_CACHE_TTL_SECONDS",
        "EARNINGS_REFRESH_INTERVAL_SECONDS",
        "FMP_DAILY_REQUEST_LIMIT",
    )
    @classmethod
    def _non_negative(cls, value: int) -> int:
        return max(value, 0)

    @field_validator("CORS_ALLOW_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, value):
        if value is None:
            return value
        if isinstance(value, str):
            parts = [part.strip() for part in value.split(",") if part.strip()]
            return parts
        return value

    @property
    def storage_mode(self) -> str:
        """USE_POSTGRES wins over MOCK_DATA; with neither, serve live Polymarket data."""
        if self.USE_POSTGRES:
            return "postgres"
        if self.MOCK_DATA:
            return "mock"
        return "live"


settings = Settings()
