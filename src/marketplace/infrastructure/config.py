"""Runtime settings, read from ``MARKETPLACE_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from marketplace.domain.model.value_objects import Money
from marketplace.domain.service.pricing import PricingPolicy

ENV_PREFIX = "MARKETPLACE_"

# Resolve data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
_DATA_DIR = Path(__file__).resolve().parents[3] / "data"


class ConfigurationError(Exception):
    """An environment variable holds an unusable value."""


@dataclass(frozen=True)
class Settings:
    database_url: str = f"sqlite:///{_DATA_DIR / 'marketplace.db'}"
    currency: str = "INR"
    gateway_provider: str = "razorpay"
    gateway_base_url: str = "https://api.razorpay.com/v1"
    gateway_key_id: str = ""
    gateway_key_secret: str = ""
    gateway_timeout: float = 10.0
    free_shipping_threshold: int = 99900
    shipping_fee: int = 9900
    tax_rate_bps: int = 1800
    log_level: str = "WARNING"

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        defaults = Settings()

        def text(name: str, default: str) -> str:
            return env.get(ENV_PREFIX + name, default).strip() or default

        def integer(name: str, default: int) -> int:
            raw = env.get(ENV_PREFIX + name)
            if raw is None or not raw.strip():
                return default
            try:
                value = int(raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"{ENV_PREFIX}{name} must be an integer, got {raw!r}"
                ) from exc
            if value < 0:
                raise ConfigurationError(f"{ENV_PREFIX}{name} cannot be negative")
            return value

        def seconds(name: str, default: float) -> float:
            raw = env.get(ENV_PREFIX + name)
            if raw is None or not raw.strip():
                return default
            try:
                value = float(raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"{ENV_PREFIX}{name} must be a number of seconds, got {raw!r}"
                ) from exc
            if value <= 0:
                raise ConfigurationError(f"{ENV_PREFIX}{name} must be positive")
            return value

        return Settings(
            database_url=text("DATABASE_URL", defaults.database_url),
            currency=text("CURRENCY", defaults.currency).upper(),
            gateway_provider=text("GATEWAY_PROVIDER", defaults.gateway_provider),
            gateway_base_url=text("GATEWAY_BASE_URL", defaults.gateway_base_url),
            gateway_key_id=text("GATEWAY_KEY_ID", defaults.gateway_key_id),
            gateway_key_secret=text("GATEWAY_KEY_SECRET", defaults.gateway_key_secret),
            gateway_timeout=seconds("GATEWAY_TIMEOUT", defaults.gateway_timeout),
            free_shipping_threshold=integer(
                "FREE_SHIPPING_THRESHOLD", defaults.free_shipping_threshold
            ),
            shipping_fee=integer("SHIPPING_FEE", defaults.shipping_fee),
            tax_rate_bps=integer("TAX_RATE_BPS", defaults.tax_rate_bps),
            log_level=text("LOG_LEVEL", defaults.log_level).upper(),
        )

    def pricing_policy(self) -> PricingPolicy:
        return PricingPolicy(
            free_shipping_threshold=Money(self.free_shipping_threshold, self.currency),
            shipping_fee=Money(self.shipping_fee, self.currency),
            tax_rate_bps=self.tax_rate_bps,
        )

    def __repr__(self) -> str:
        # Keep the gateway secret out of logs and tracebacks.
        return (
            f"Settings(database_url={self.database_url!r}, currency={self.currency!r}, "
            f"gateway_provider={self.gateway_provider!r}, "
            f"gateway_key_id={self.gateway_key_id!r}, gateway_key_secret='***')"
        )
