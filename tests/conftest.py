"""Shared fixtures: frozen clock, in-memory collaborators, SQLite database."""

from collections.abc import AsyncIterator
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderflow import Sku
from orderflow._clock import FrozenClock
from orderflow.config import Settings
from orderflow.context import MemoryZones
from orderflow.db import create_database
from orderflow.pricing import MemoryPriceSource, PriceRecord
from orderflow.shipping import CarrierRegistry, FlatRateCarrier, WeightRateCarrier
from orderflow.tax import MemoryTaxRules, TaxRule

from factories import MAIN, NOW


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, carrier_timeout_seconds=0.05, carrier_retry_delay_seconds=0)


@pytest.fixture
def zones() -> MemoryZones:
    return MemoryZones({"US": frozenset({"CA", "NY"}), "GB": frozenset()})


@pytest.fixture
def prices() -> MemoryPriceSource:
    return MemoryPriceSource({
        MAIN: [
            PriceRecord(Sku("widget"), Decimal("10.00")),
            PriceRecord(Sku("gadget"), Decimal("24.99")),
        ],
    })


@pytest.fixture
def tax_rules() -> MemoryTaxRules:
    return MemoryTaxRules({
        MAIN: [TaxRule("us-ny", "NY sales tax", Decimal("0.10"), country="US", zone="NY")],
    })


@pytest.fixture
def carriers() -> CarrierRegistry:
    return CarrierRegistry([
        FlatRateCarrier("flat", Decimal("5.00")),
        WeightRateCarrier("weight", Decimal("3.00"), Decimal("1.00")),
    ])


@pytest.fixture
async def session_factory(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    factory, engine = await create_database(f"sqlite+aiosqlite:///{tmp_path / 'orderflow.db'}")
    yield factory
    await engine.dispose()
