"""Application settings and configuration."""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server settings
    host: str = Field(default="0.0.0.0", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")
    debug: bool = Field(default=False, description="Enable debug mode")

    log_level: str = Field(
        default="INFO",
        description="Root log level",
        alias="LOG_LEVEL"
    )

    # Administrative identity
    authority_id: str = Field(
        default="router-authority",
        description="Identity allowed to call administrative operations",
        alias="AUTHORITY_ID"
    )

    # Router settings
    max_hops: int = Field(
        default=3,
        description="Maximum hops per route",
        alias="MAX_HOPS"
    )

    default_slippage_bps: int = Field(
        default=50,
        description="Default slippage tolerance in basis points",
        alias="DEFAULT_SLIPPAGE_BPS"
    )

    routing_fee_bps: int = Field(
        default=10,
        description="Routing fee charged on route output in basis points",
        alias="ROUTING_FEE_BPS"
    )

    default_venues: str = Field(
        default="raydium,orca,meteora",
        description="Comma-separated venues used when a request names none",
        alias="DEFAULT_VENUES"
    )

    # Flash execution settings
    flash_loan_fee_bps: int = Field(
        default=30,
        description="Fee charged by the capital provider in basis points",
        alias="FLASH_LOAN_FEE_BPS"
    )

    flash_program_fee_bps: int = Field(
        default=50,
        description="Program fee charged on gross flash profit in basis points",
        alias="FLASH_PROGRAM_FEE_BPS"
    )

    flash_max_slippage_bps: int = Field(
        default=300,
        description="Per-hop slippage tolerance for flash routes in basis points",
        alias="FLASH_MAX_SLIPPAGE_BPS"
    )

    flash_max_amount: int = Field(
        default=1_000_000_000_000,
        description="Hard ceiling on a single flash loan in raw token units",
        alias="FLASH_MAX_AMOUNT"
    )

    capital_provider_liquidity: Optional[int] = Field(
        default=None,
        description="Liquidity available to the simulated capital provider (unbounded if unset)",
        alias="CAPITAL_PROVIDER_LIQUIDITY"
    )

    # MEV protection settings
    max_price_impact_bps: int = Field(
        default=500,
        description="Maximum estimated price impact for price-impact-checked transactions",
        alias="MAX_PRICE_IMPACT_BPS"
    )

    min_time_delay_seconds: int = Field(
        default=10,
        description="Base delay between submission and earliest execution",
        alias="MIN_TIME_DELAY_SECONDS"
    )

    max_slippage_protection_bps: int = Field(
        default=200,
        description="Maximum slippage a protected transaction may request",
        alias="MAX_SLIPPAGE_PROTECTION_BPS"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",  # Ignore extra fields from .env
        "populate_by_name": True,
    }

    @property
    def default_venue_list(self):
        """Default venues as a list."""
        return [v.strip() for v in self.default_venues.split(",") if v.strip()]


# Global settings instance
settings = Settings()
