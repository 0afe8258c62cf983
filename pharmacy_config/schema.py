"""
PharmacyConfig schema.

Defines the human-authored, reviewable configuration artifact.  YAML files
under ``sets/`` are parsed into these types by the loader; ``bridges``
turns them into the plain policy objects the kernel accepts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings for the relational store."""

    url: str = "sqlite://"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10


@dataclass(frozen=True)
class PricingConfig:
    """Markup applied on purchase and rounding of derived money values."""

    markup_rate: Decimal = Decimal("0.40")
    money_places: int = 4


@dataclass(frozen=True)
class StockConfig:
    """Stock rules for the reconcilers."""

    min_pack_size_stock_for_sale: int = 2
    rollback_factor_source: str = "medicine_current"
    purchase_removal: str = "tombstone_only"
    restore_stock_on_sale_removal: bool = True


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PharmacyConfig:
    """A complete, validated configuration set.

    ``checksum`` is the SHA-256 of the canonical source document and is
    what the PHARMACY_CONFIG_TRACE log line records.
    """

    config_id: str
    version: int
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    stock: StockConfig = field(default_factory=StockConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""
