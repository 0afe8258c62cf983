"""
Bridges -- translate configuration into kernel policy objects.

The kernel never imports ``pharmacy_config``.  These functions are the only
place where configuration values become ``PricingPolicy`` and
``StockPolicy`` instances.
"""

from __future__ import annotations

from pharmacy_config.schema import PharmacyConfig
from pharmacy_kernel.domain.policies import (
    PurchaseRemovalPolicy,
    RollbackFactor,
    StockPolicy,
)
from pharmacy_kernel.domain.pricing import PricingPolicy


def build_pricing_policy(config: PharmacyConfig) -> PricingPolicy:
    return PricingPolicy(
        markup_rate=config.pricing.markup_rate,
        money_places=config.pricing.money_places,
    )


def build_stock_policy(config: PharmacyConfig) -> StockPolicy:
    return StockPolicy(
        min_pack_size_stock_for_sale=config.stock.min_pack_size_stock_for_sale,
        rollback_factor_source=RollbackFactor(config.stock.rollback_factor_source),
        purchase_removal=PurchaseRemovalPolicy(config.stock.purchase_removal),
        restore_stock_on_sale_removal=config.stock.restore_stock_on_sale_removal,
    )
