"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class MarketDataSettings(BaseSettings):
    """Venue selection, blend weights and candle history depth."""

    model_config = SettingsConfigDict(env_prefix="MARKET_")

    symbol: str = "BTC/USDT:USDT"  # ccxt unified linear perpetual symbol
    primary_venue: str = "binanceusdm"
    secondary_venue: str = "bybit"
    primary_weight: Decimal = Decimal("0.6")
    secondary_weight: Decimal = Decimal("0.4")
    candle_page_limit: int = 1000  # per-request cap when paging backward
    request_timeout_seconds: float = 10.0

    # Candle counts per timeframe; 1m needs >= 2000 for the White Zone band
    candles_1m: int = 2500
    candles_5m: int = 500
    candles_1h: int = 500
    candles_4h: int = 200
    candles_1d: int = 100

    def candle_counts(self) -> dict[str, int]:
        """Return the timeframe -> candle count mapping in fetch order."""
        return {
            "1m": self.candles_1m,
            "5m": self.candles_5m,
            "1h": self.candles_1h,
            "4h": self.candles_4h,
            "1d": self.candles_1d,
        }


class TradingSettings(BaseSettings):
    """Position lifecycle, risk sizing and loop cadence."""

    model_config = SettingsConfigDict(env_prefix="TRADING_")

    entry_threshold: int = 75  # min oracle confidence to open
    default_risk_per_trade: Decimal = Decimal("0.02")  # 2% of balance
    min_sl_distance_pct: Decimal = Decimal("0.01")  # stop distance floor
    add_fraction: Decimal = Decimal("0.01")  # pyramid leg notional vs balance
    fee_rate: Decimal = Decimal("0.0004")  # 0.04% per side

    # Volatility-tiered leverage: ATR/price below tier -> leverage
    low_vol_threshold: Decimal = Decimal("0.005")
    mid_vol_threshold: Decimal = Decimal("0.01")
    low_vol_leverage: int = 20
    mid_vol_leverage: int = 10
    high_vol_leverage: int = 5

    initial_balance: Decimal = Decimal("1000")
    decision_interval: int = 300  # seconds between decision cycles
    monitor_interval: int = 10  # seconds between trigger checks
    history_depth: int = 6  # previous snapshots fed to the oracle
    recent_trades_depth: int = 5


class OracleSettings(BaseSettings):
    """Decision oracle (Gemini) connection settings."""

    model_config = SettingsConfigDict(env_prefix="ORACLE_")

    api_key: SecretStr = SecretStr("")
    model: str = "gemini-2.0-flash"
    timeout_seconds: float = 30.0


class NotificationSettings(BaseSettings):
    """Telegram notification delivery. Empty token or chat id disables it."""

    model_config = SettingsConfigDict(env_prefix="TELEGRAM_")

    bot_token: SecretStr = SecretStr("")
    chat_id: str = ""
    timeout_seconds: float = 5.0


class DatabaseSettings(BaseSettings):
    """SQLite ledger location."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    path: str = "data/trader.db"


class ApiSettings(BaseSettings):
    """Admin JSON API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    market: MarketDataSettings = MarketDataSettings()
    trading: TradingSettings = TradingSettings()
    oracle: OracleSettings = OracleSettings()
    notifications: NotificationSettings = NotificationSettings()
    database: DatabaseSettings = DatabaseSettings()
    api: ApiSettings = ApiSettings()
