"""
Application Settings
Load from environment variables
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


PROJECT_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """Application settings from environment"""

    # ======================
    # Application
    # ======================
    APP_ENV: str = "development"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3001
    API_PREFIX: str = "/api"

    # Frontend origin allowed by CORS
    FRONTEND_URL: str = "http://localhost:3000"

    # ======================
    # Cache
    # ======================
    CACHE_TTL: int = 15
    CACHE_CHECK_PERIOD_RATIO: float = 0.2

    # Recommended frontend refresh interval (seconds)
    REFRESH_INTERVAL: int = 15

    # ======================
    # Rate limiting
    # ======================
    RATE_LIMIT_WINDOW_MS: int = 60_000
    RATE_LIMIT_MAX_REQUESTS: int = 100
    PORTFOLIO_RATE_LIMIT_WINDOW_SECONDS: int = 15
    PORTFOLIO_RATE_LIMIT_MAX: int = 2

    # ======================
    # Holdings
    # ======================
    HOLDINGS_FILE: str = str(PROJECT_ROOT / "config" / "holdings.yml")

    # ======================
    # Market Data
    # ======================
    UPSTREAM_TIMEOUT_SECONDS: float = 10.0
    PRICE_BATCH_SIZE: int = 5
    PRICE_BATCH_DELAY_SECONDS: float = 0.1
    FUNDAMENTALS_REQUEST_DELAY_SECONDS: float = 0.3
    FUNDAMENTALS_RETRIES: int = 2
    FUNDAMENTALS_BACKOFF_BASE_SECONDS: float = 0.5
    YF_SYMBOL_OVERRIDES: str = ""

    # ======================
    # Pydantic v2 config
    # ======================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="forbid",
    )

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"


settings = Settings()
