"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: Optional[str] = Field(
        None,
        description="Supabase project URL"
    )
    supabase_key: Optional[str] = Field(
        None,
        description="Supabase anon/public key"
    )
    data_source: str = Field(
        default="supabase",
        pattern="^(supabase|offline)$",
        description="Where sales and products come from (offline = seeded in-memory store)"
    )

    # ===================
    # TELEGRAM
    # ===================
    telegram_bot_token: Optional[str] = Field(
        None,
        description="Telegram bot token from @BotFather"
    )
    telegram_chat_id: Optional[str] = Field(
        None,
        description="Telegram chat ID for alerts"
    )

    # ===================
    # FORECAST MODEL
    # ===================
    history_window_days: int = Field(
        default=365,
        ge=7,
        le=1825,
        description="Trailing window of fulfilled orders used for training"
    )
    forecast_horizon_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Default projection horizon"
    )
    smoothing_alpha: float = Field(
        default=0.3,
        gt=0,
        lt=1,
        description="Holt level smoothing constant"
    )
    smoothing_beta: float = Field(
        default=0.1,
        gt=0,
        lt=1,
        description="Holt trend smoothing constant"
    )
    trend_weight: float = Field(
        default=0.6,
        ge=0,
        le=1,
        description="Weight of the trend model (seasonal gets 1 - weight)"
    )
    confidence_threshold: float = Field(
        default=0.8,
        ge=0,
        le=0.95,
        description="Minimum forecast confidence for automated purchase orders"
    )

    # ===================
    # INVENTORY ECONOMICS
    # ===================
    default_lead_time_days: int = Field(
        default=7,
        ge=1,
        le=180,
        description="Lead time used when a product has none"
    )
    safety_stock_z_score: float = Field(
        default=1.645,
        ge=0,
        le=3,
        description="Z-score for safety stock (1.645 = 95% service level)"
    )
    ordering_cost: float = Field(
        default=50.0,
        ge=0,
        description="Fixed cost per purchase order"
    )
    holding_cost_rate: float = Field(
        default=0.20,
        ge=0,
        le=1,
        description="Annual carrying cost as a fraction of unit price"
    )
    wholesale_cost_fraction: float = Field(
        default=0.6,
        gt=0,
        le=1,
        description="Assumed supplier cost as a fraction of retail price"
    )

    # ===================
    # ALERTS & MONITORING
    # ===================
    alert_log_capacity: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Maximum alerts retained in memory"
    )
    low_stock_threshold: int = Field(
        default=10,
        ge=0,
        description="Products below this count are checked by the stock monitor"
    )
    stock_monitor_interval_seconds: float = Field(
        default=300,
        gt=0,
        description="Stock monitor tick interval"
    )
    auto_order_interval_seconds: float = Field(
        default=86400,
        gt=0,
        description="Automated purchase order run interval"
    )
    forecast_stale_after_hours: int = Field(
        default=24,
        ge=1,
        description="Forecasts older than this raise a forecast_stale alert"
    )
    monitor_enabled: bool = Field(
        default=True,
        description="Start background monitor tasks with the app"
    )

    # ===================
    # CACHE TTLS (seconds)
    # ===================
    history_cache_ttl: int = Field(default=3600, ge=0)
    forecast_cache_ttl: int = Field(default=1800, ge=0)
    performance_cache_ttl: int = Field(default=1800, ge=0)
    dashboard_cache_ttl: int = Field(default=900, ge=0)
    insights_cache_ttl: int = Field(default=3600, ge=0)

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def supabase_configured(self) -> bool:
        """Check if Supabase credentials are present."""
        return bool(self.supabase_url and self.supabase_key)

    @property
    def use_offline_store(self) -> bool:
        """Offline mode is explicit or forced by missing Supabase credentials."""
        return self.data_source == "offline" or not self.supabase_configured

    @property
    def telegram_configured(self) -> bool:
        """Check if Telegram is properly configured."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
