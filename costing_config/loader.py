"""
Configuration Loader (``costing_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``costing_config.schema`` dataclasses.  The single public entry point for
runtime config is ``costing_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Non-numeric or non-positive rate/margin values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from costing_config.schema import (
    DEFAULT_DATABASE_URL,
    DEFAULT_HOURLY_RATE,
    DEFAULT_HOURS_PER_DAY,
    DEFAULT_MARGIN_PERCENTAGE,
    BudgetConfig,
    CostingConfig,
    DatabaseConfig,
    EquipmentConfig,
    LaborConfig,
    LoggingConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, name: str, *, allow_zero: bool = False) -> Decimal:
    """Parse a positive Decimal from a YAML scalar (str, int or float)."""
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"{name} must be numeric, got {value!r}") from exc
    if not parsed.is_finite() or parsed < 0 or (parsed == 0 and not allow_zero):
        raise ValueError(f"{name} must be greater than 0, got {value!r}")
    return parsed


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    section = data.get(key) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{key}' must be a mapping")
    return section


def parse_config(data: dict[str, Any]) -> CostingConfig:
    """
    Parse a ``CostingConfig`` from a dict.

    Missing sections and keys fall back to the schema defaults.
    """
    database = _section(data, "database")
    labor = _section(data, "labor")
    equipment = _section(data, "equipment")
    budget = _section(data, "budget")
    logging_section = _section(data, "logging")

    config = CostingConfig(
        database=DatabaseConfig(
            url=str(database.get("url", DEFAULT_DATABASE_URL)),
            echo=bool(database.get("echo", False)),
        ),
        labor=LaborConfig(
            default_hourly_rate=parse_decimal(
                labor.get("default_hourly_rate", DEFAULT_HOURLY_RATE),
                "labor.default_hourly_rate",
            ),
        ),
        equipment=EquipmentConfig(
            hours_per_day=parse_decimal(
                equipment.get("hours_per_day", DEFAULT_HOURS_PER_DAY),
                "equipment.hours_per_day",
            ),
        ),
        budget=BudgetConfig(
            margin_percentage=parse_decimal(
                budget.get("margin_percentage", DEFAULT_MARGIN_PERCENTAGE),
                "budget.margin_percentage",
                allow_zero=True,
            ),
        ),
        logging=LoggingConfig(
            level=str(logging_section.get("level", "INFO")).upper(),
        ),
    )
    return replace(config, checksum=compute_checksum(config))


def compute_checksum(config: CostingConfig) -> str:
    """Deterministic SHA-256 over the canonical (sorted, stringified) config."""
    canonical = {
        "database": {"url": config.database.url, "echo": config.database.echo},
        "labor": {"default_hourly_rate": str(config.labor.default_hourly_rate)},
        "equipment": {"hours_per_day": str(config.equipment.hours_per_day)},
        "budget": {"margin_percentage": str(config.budget.margin_percentage)},
        "logging": {"level": config.logging.level},
    }
    blob = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()


def load_config_file(path: Path) -> CostingConfig:
    """Load and parse a YAML configuration file."""
    return parse_config(load_yaml_file(path))
