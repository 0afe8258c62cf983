"""Outer service layer: transaction ownership and configuration wiring."""

from pharmacy_services.inventory_orchestrator import (
    InventoryOrchestrator,
    KernelServices,
    build_inventory_orchestrator,
)

__all__ = ["InventoryOrchestrator", "KernelServices", "build_inventory_orchestrator"]
