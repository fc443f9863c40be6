"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from marketplace.domain.gateway.payment_gateway import PaymentGateway
from marketplace.domain.repository.unit_of_work import UnitOfWork
from marketplace.domain.service.pricing import PricingPolicy
from marketplace.infrastructure.config import ConfigurationError, Settings
from marketplace.infrastructure.gateway.razorpay_gateway import RazorpayGateway
from marketplace.infrastructure.persistence.sql_unit_of_work import (
    SqlAlchemyUnitOfWork,
)
from marketplace.infrastructure.persistence.tables import (
    create_db_engine,
    create_session_factory,
)


@lru_cache(maxsize=1)
def settings() -> Settings:
    return Settings.from_env()


@lru_cache(maxsize=1)
def engine() -> Engine:
    return create_db_engine(settings().database_url)


@lru_cache(maxsize=1)
def session_factory() -> sessionmaker[Session]:
    return create_session_factory(engine())


def unit_of_work() -> UnitOfWork:
    return SqlAlchemyUnitOfWork(session_factory())


def pricing_policy() -> PricingPolicy:
    return settings().pricing_policy()


def payment_gateway() -> PaymentGateway:
    config = settings()
    if config.gateway_provider != RazorpayGateway.provider:
        raise ConfigurationError(
            f"Unsupported payment gateway {config.gateway_provider!r}"
        )
    if not (config.gateway_key_id and config.gateway_key_secret):
        raise ConfigurationError(
            "MARKETPLACE_GATEWAY_KEY_ID and MARKETPLACE_GATEWAY_KEY_SECRET must be set"
        )
    return RazorpayGateway(
        config.gateway_key_id,
        config.gateway_key_secret,
        base_url=config.gateway_base_url,
        timeout=config.gateway_timeout,
    )
