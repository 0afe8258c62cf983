"""
Pharmacy Kernel

Inventory and sales reconciliation for a pharmacy backend:
- Medicine ledger with pack-size and issue-unit stock
- Supplier order tracking
- Purchase and sale reconciliation with atomic rollback
- Soft-delete tombstones on every entity
"""

__version__ = "0.1.0"
