# app/config.py
import os
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PRICING_CONFIG = (
    Path(__file__).resolve().parent
    / "verticals"
    / "printshop"
    / "catalog"
    / "data"
    / "pricing_config.yaml"
)


class Settings(BaseSettings):
    # === General ===
    app_env: str = "local"  # local | development | production

    # === Logging ===
    log_level: str = "INFO"

    # === Pricing ===
    pricing_config_path: str = Field(
        str(DEFAULT_PRICING_CONFIG),
        description="YAML file with tier benefits, volume bands, promo codes, MOQ rules and net terms",
    )
    default_tax_rate: Decimal = Decimal("0.08")
    default_shipping_method: str = "standard"  # standard | expedited | priority

    # === Invoicing ===
    company_name: str = "Sticky Slap"
    company_phone: Optional[str] = None
    company_email: Optional[str] = None
    invoice_number_prefix: str = "INV"

    # === Pydantic Settings config ===
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton Settings instance with simple env overrides."""
    s = Settings()

    env = os.getenv("ENVIRONMENT", s.app_env).lower()
    if env == "production":
        s.log_level = "WARNING"
    elif env == "development":
        s.log_level = "DEBUG"

    return s
