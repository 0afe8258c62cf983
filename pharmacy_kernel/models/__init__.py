"""ORM models for the pharmacy kernel."""

from pharmacy_kernel.models.medicine import Medicine
from pharmacy_kernel.models.order import Order
from pharmacy_kernel.models.party import Party
from pharmacy_kernel.models.purchase import Purchase
from pharmacy_kernel.models.sale import Sale

__all__ = [
    "Medicine",
    "Order",
    "Party",
    "Purchase",
    "Sale",
]
