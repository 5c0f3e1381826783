"""
Costing configuration schema.

Frozen dataclasses parsed from YAML by ``costing_config.loader``.  Every
field has a default, so an empty or absent configuration file still
yields a usable configuration (the labor rate never fails to resolve).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///:memory:"
DEFAULT_HOURLY_RATE = Decimal("45")
DEFAULT_HOURS_PER_DAY = Decimal("8")
DEFAULT_MARGIN_PERCENTAGE = Decimal("10")


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings passed to ``init_engine_from_url``."""

    url: str = DEFAULT_DATABASE_URL
    echo: bool = False


@dataclass(frozen=True)
class LaborConfig:
    """Company-wide fallback when neither employee nor settings carry a rate."""

    default_hourly_rate: Decimal = DEFAULT_HOURLY_RATE


@dataclass(frozen=True)
class EquipmentConfig:
    """Conversion used for daily-rate equipment: days = hours / hours_per_day."""

    hours_per_day: Decimal = DEFAULT_HOURS_PER_DAY


@dataclass(frozen=True)
class BudgetConfig:
    """Deviation band above which a project is over budget / over planning."""

    margin_percentage: Decimal = DEFAULT_MARGIN_PERCENTAGE


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class CostingConfig:
    """Root configuration object returned by ``get_active_config()``."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    labor: LaborConfig = field(default_factory=LaborConfig)
    equipment: EquipmentConfig = field(default_factory=EquipmentConfig)
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""
