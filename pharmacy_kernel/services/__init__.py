"""Write services: catalog and party CRUD, orders, and the reconcilers."""

from pharmacy_kernel.services.base import BaseService
from pharmacy_kernel.services.medicine_service import MedicineService
from pharmacy_kernel.services.order_service import OrderService
from pharmacy_kernel.services.party_service import PartyService
from pharmacy_kernel.services.purchase_reconciler import PurchaseReconciler
from pharmacy_kernel.services.sale_reconciler import SaleReconciler

__all__ = [
    "BaseService",
    "MedicineService",
    "OrderService",
    "PartyService",
    "PurchaseReconciler",
    "SaleReconciler",
]
