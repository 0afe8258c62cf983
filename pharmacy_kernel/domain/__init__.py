"""Pure domain core: values, pricing arithmetic, order transitions, DTOs."""

from pharmacy_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from pharmacy_kernel.domain.dtos import (
    MedicineSnapshot,
    OrderInfo,
    PartyInfo,
    PurchaseRecord,
    PurchaseView,
    SaleLine,
    SaleRecord,
)
from pharmacy_kernel.domain.order_tracker import OrderTransition, apply_supply, assert_open
from pharmacy_kernel.domain.policies import (
    PurchaseRemovalPolicy,
    RollbackFactor,
    StockPolicy,
)
from pharmacy_kernel.domain.pricing import PriceBreakdown, PricingPolicy, price_purchase
from pharmacy_kernel.domain.values import DoseForm, OrderStatus, PartyType, SaleStatus

__all__ = [
    "Clock",
    "DeterministicClock",
    "DoseForm",
    "MedicineSnapshot",
    "OrderInfo",
    "OrderStatus",
    "OrderTransition",
    "PartyInfo",
    "PartyType",
    "PriceBreakdown",
    "PricingPolicy",
    "PurchaseRecord",
    "PurchaseRemovalPolicy",
    "PurchaseView",
    "RollbackFactor",
    "SaleLine",
    "SaleRecord",
    "SaleStatus",
    "StockPolicy",
    "SystemClock",
    "apply_supply",
    "assert_open",
    "price_purchase",
]
