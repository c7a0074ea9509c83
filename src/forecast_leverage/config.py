"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class LeverageSettings(BaseSettings):
    """Loop sizing and input limits.

    convergence_threshold is the epsilon in loops = ceil(ln(eps) / ln(F)):
    the loop stops once the geometric series has captured (1 - eps) of the
    theoretical 1/(1-F) maximum. Simulation and execution share it.
    """

    model_config = SettingsConfigDict(env_prefix="LEVERAGE_")

    convergence_threshold: Decimal = Decimal("0.01")  # 99% of max leverage
    runway_safety_margin: Decimal = Decimal("0.95")
    min_capital_usdc: Decimal = Decimal("10")
    min_timeframe_seconds: int = 60
    max_timeframe_seconds: int = 365 * 24 * 3600
    max_slippage_bps: int = 5000  # 50%
    min_loop_capital_usdc: Decimal = Decimal("1")
    condition_id_prefix: str = "0x"


class ExecutionSettings(BaseSettings):
    """Order placement timing on the matching venue."""

    model_config = SettingsConfigDict(env_prefix="EXECUTION_")

    fok_fill_timeout_seconds: float = 10.0
    limit_fill_timeout_seconds: float = 30.0  # GTC and GTD
    poll_interval_seconds: float = 1.0
    backoff_multiplier: Decimal = Decimal("1.5")
    gtd_expiration_buffer_seconds: int = 60  # venue rejects GTD expiring < 1 minute out


class ProtocolSettings(BaseSettings):
    """Lending protocol token units and event names."""

    model_config = SettingsConfigDict(env_prefix="PROTOCOL_")

    usdc_decimals: int = 6
    token_decimals: int = 6
    leg_opened_event: str = "LegOpened"


class GasSettings(BaseSettings):
    """Gas estimation for the metrics report."""

    model_config = SettingsConfigDict(env_prefix="GAS_")

    gas_per_leg: int = 500_000
    native_usd_price: Decimal = Decimal("1")  # USD per native fee token


class VenueSettings(BaseSettings):
    """Polymarket CLOB connection settings."""

    model_config = SettingsConfigDict(env_prefix="VENUE_")

    host: str = "https://clob.polymarket.com"
    chain_id: int = 137
    private_key: SecretStr = SecretStr("")
    funder_address: str = ""
    signature_type: int = 1
    tick_size: str = "0.001"
    neg_risk: bool = False


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    leverage: LeverageSettings = LeverageSettings()
    execution: ExecutionSettings = ExecutionSettings()
    protocol: ProtocolSettings = ProtocolSettings()
    gas: GasSettings = GasSettings()
    venue: VenueSettings = VenueSettings()
