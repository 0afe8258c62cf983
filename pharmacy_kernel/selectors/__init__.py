"""Read-only selectors."""

from pharmacy_kernel.selectors.base import BaseSelector
from pharmacy_kernel.selectors.inventory_selector import InventorySelector

__all__ = ["BaseSelector", "InventorySelector"]
