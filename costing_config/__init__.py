"""
costing_config -- single public entrypoint for costing configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the resulting values by
    injection (for example the labor rate defaults handed to the labor
    adapter); they never read files or environment variables themselves.

Resolution order:
    1. Explicit ``path`` argument.
    2. ``COSTING_CONFIG`` environment variable.
    3. The packaged ``defaults.yaml``.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``costing_config_loaded`` log entry carrying the source path and the
    configuration checksum.
"""

from __future__ import annotations

import os
from pathlib import Path

from costing_config.loader import load_config_file, parse_config
from costing_config.schema import (
    BudgetConfig,
    CostingConfig,
    DatabaseConfig,
    EquipmentConfig,
    LaborConfig,
    LoggingConfig,
)
from costing_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_ENV_VAR = "COSTING_CONFIG"


def get_active_config(path: Path | str | None = None) -> CostingConfig:
    """
    Load the active costing configuration.

    Raises:
        FileNotFoundError: if an explicitly requested file does not exist.
        ValueError: if a value fails validation.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        path = Path(env_path) if env_path else _DEFAULT_CONFIG_PATH
    config = load_config_file(Path(path))
    _logger.info(
        "costing_config_loaded",
        extra={"config_path": str(path), "checksum": config.checksum},
    )
    return config


__all__ = [
    "BudgetConfig",
    "CONFIG_ENV_VAR",
    "CostingConfig",
    "DatabaseConfig",
    "EquipmentConfig",
    "LaborConfig",
    "LoggingConfig",
    "get_active_config",
    "parse_config",
]
