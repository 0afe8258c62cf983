"""
Configuration Loader (``pharmacy_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the typed
``pharmacy_config.schema`` dataclasses.  The single public entry point for
runtime config is ``pharmacy_config.get_active_config()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; unknown keys are rejected rather than ignored.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``config_id`` / ``version``  -> ``KeyError`` propagates.
* Out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from pharmacy_config.schema import (
    DatabaseConfig,
    LoggingConfig,
    PharmacyConfig,
    PricingConfig,
    StockConfig,
)

_ROLLBACK_FACTOR_SOURCES = frozenset({"medicine_current", "purchase_recorded"})
_PURCHASE_REMOVAL_POLICIES = frozenset({"tombstone_only", "reverse_stock"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _section(data: dict[str, Any], name: str, allowed: frozenset[str]) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Section '{name}' must be a mapping, got {type(section).__name__}")
    unknown = set(section) - allowed
    if unknown:
        raise ValueError(f"Unknown keys in section '{name}': {sorted(unknown)}")
    return section


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    section = _section(data, "database", frozenset({"url", "echo", "pool_size", "max_overflow"}))
    default = DatabaseConfig()
    config = DatabaseConfig(
        url=str(section.get("url", default.url)),
        echo=bool(section.get("echo", default.echo)),
        pool_size=int(section.get("pool_size", default.pool_size)),
        max_overflow=int(section.get("max_overflow", default.max_overflow)),
    )
    if config.pool_size <= 0:
        raise ValueError(f"database.pool_size must be > 0, got {config.pool_size}")
    return config


def parse_pricing(data: dict[str, Any]) -> PricingConfig:
    section = _section(data, "pricing", frozenset({"markup_rate", "money_places"}))
    default = PricingConfig()
    raw_rate = section.get("markup_rate", default.markup_rate)
    try:
        markup_rate = Decimal(str(raw_rate))
    except InvalidOperation:
        raise ValueError(f"pricing.markup_rate is not a number: {raw_rate!r}") from None
    if markup_rate < 0:
        raise ValueError(f"pricing.markup_rate must be >= 0, got {markup_rate}")
    money_places = int(section.get("money_places", default.money_places))
    if not 0 <= money_places <= 9:
        raise ValueError(f"pricing.money_places must be in 0..9, got {money_places}")
    return PricingConfig(markup_rate=markup_rate, money_places=money_places)


def parse_stock(data: dict[str, Any]) -> StockConfig:
    section = _section(
        data,
        "stock",
        frozenset(
            {
                "min_pack_size_stock_for_sale",
                "rollback_factor_source",
                "purchase_removal",
                "restore_stock_on_sale_removal",
            }
        ),
    )
    default = StockConfig()
    config = StockConfig(
        min_pack_size_stock_for_sale=int(
            section.get("min_pack_size_stock_for_sale", default.min_pack_size_stock_for_sale)
        ),
        rollback_factor_source=str(
            section.get("rollback_factor_source", default.rollback_factor_source)
        ),
        purchase_removal=str(section.get("purchase_removal", default.purchase_removal)),
        restore_stock_on_sale_removal=bool(
            section.get("restore_stock_on_sale_removal", default.restore_stock_on_sale_removal)
        ),
    )
    if config.min_pack_size_stock_for_sale < 0:
        raise ValueError(
            "stock.min_pack_size_stock_for_sale must be >= 0, "
            f"got {config.min_pack_size_stock_for_sale}"
        )
    if config.rollback_factor_source not in _ROLLBACK_FACTOR_SOURCES:
        raise ValueError(
            f"stock.rollback_factor_source must be one of "
            f"{sorted(_ROLLBACK_FACTOR_SOURCES)}, got {config.rollback_factor_source!r}"
        )
    if config.purchase_removal not in _PURCHASE_REMOVAL_POLICIES:
        raise ValueError(
            f"stock.purchase_removal must be one of "
            f"{sorted(_PURCHASE_REMOVAL_POLICIES)}, got {config.purchase_removal!r}"
        )
    return config


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    section = _section(data, "logging", frozenset({"level"}))
    level = str(section.get("level", LoggingConfig().level)).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"logging.level is not a logging level: {level!r}")
    return LoggingConfig(level=level)


def parse_config(data: dict[str, Any]) -> PharmacyConfig:
    """
    Parse a whole configuration document.

    Postconditions:
        - Returns a frozen ``PharmacyConfig`` whose ``checksum`` is the
          SHA-256 of ``data``.
    """
    unknown = set(data) - {"config_id", "version", "database", "pricing", "stock", "logging"}
    if unknown:
        raise ValueError(f"Unknown top-level keys: {sorted(unknown)}")
    return PharmacyConfig(
        config_id=str(data["config_id"]),
        version=int(data["version"]),
        database=parse_database(data),
        pricing=parse_pricing(data),
        stock=parse_stock(data),
        logging=parse_logging(data),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
