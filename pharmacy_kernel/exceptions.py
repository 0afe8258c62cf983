"""
Typed Exception Hierarchy for the Pharmacy Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from PharmacyKernelError:

    PharmacyKernelError (base)
    |
    +-- NotFoundError
    |   +-- MedicineNotFoundError
    |   +-- OrderNotFoundError
    |   +-- PurchaseNotFoundError
    |   +-- SaleNotFoundError
    |   +-- PartyNotFoundError
    |
    +-- ForbiddenOperationError
    |   +-- OrderClosedError
    |   +-- OverSupplyError
    |   +-- InsufficientStockError
    |   +-- NegativeStockError
    |   +-- SaleCancelledError
    |
    +-- PreconditionFailedError
    |   +-- ExpiredMedicineError
    |
    +-- BadRequestError
    |   +-- InvalidExpiryDateError
    |   +-- InvalidPayloadError
    |
    +-- ConflictError
    |   +-- DuplicateMedicineError
    |   +-- DuplicatePartyError
    |
    +-- ConcurrencyError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Not found       | MEDICINE_NOT_FOUND          | Medicine ID missing or tombstoned
                | ORDER_NOT_FOUND             | Order ID missing or tombstoned
                | PURCHASE_NOT_FOUND          | Purchase ID missing or tombstoned
                | SALE_NOT_FOUND              | Sale ID missing
                | PARTY_NOT_FOUND             | Customer/supplier missing or tombstoned
----------------|-----------------------------|-----------------------------------------
Forbidden       | ORDER_CLOSED                | Order is DELIVERED or CANCELLED
                | OVER_SUPPLY                 | Supplied quantity > remaining order
                | INSUFFICIENT_STOCK          | Sale would empty stock / stock floor
                | NEGATIVE_STOCK              | Ledger mutation would go below zero
                | SALE_CANCELLED              | Editing or removing a cancelled sale
----------------|-----------------------------|-----------------------------------------
Precondition    | EXPIRED_MEDICINE            | Purchase/sale/order on expired medicine
----------------|-----------------------------|-----------------------------------------
Bad request     | INVALID_EXPIRY_DATE         | Expiry date in the past
                | INVALID_PAYLOAD             | Non-positive quantity, price or factor
----------------|-----------------------------|-----------------------------------------
Conflict        | DUPLICATE_MEDICINE          | Same name + dose form + strength exists
                | DUPLICATE_PARTY             | Same customer/supplier name exists

===============================================================================
HANDLING PATTERNS
===============================================================================

Catch by category, read structured attributes, never parse messages:

    try:
        orchestrator.create_purchase(order_id, actor_id, ...)
    except OverSupplyError as e:
        return {"error": e.code, "remaining": e.remaining, "supplied": e.supplied}
    except ForbiddenOperationError as e:
        return {"error": e.code}

No error in this module is retried automatically.  The caller decides.
"""


class PharmacyKernelError(Exception):
    """
    Base exception for all pharmacy kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PHARMACY_KERNEL_ERROR"


# Lookup misses


class NotFoundError(PharmacyKernelError):
    """Base exception for entity lookup misses."""

    code: str = "NOT_FOUND"

    entity_type: str = "entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type.capitalize()} not found: {entity_id}")


class MedicineNotFoundError(NotFoundError):
    code: str = "MEDICINE_NOT_FOUND"
    entity_type = "medicine"


class OrderNotFoundError(NotFoundError):
    code: str = "ORDER_NOT_FOUND"
    entity_type = "order"


class PurchaseNotFoundError(NotFoundError):
    code: str = "PURCHASE_NOT_FOUND"
    entity_type = "purchase"


class SaleNotFoundError(NotFoundError):
    code: str = "SALE_NOT_FOUND"
    entity_type = "sale"


class PartyNotFoundError(NotFoundError):
    code: str = "PARTY_NOT_FOUND"
    entity_type = "party"


# Business-rule violations


class ForbiddenOperationError(PharmacyKernelError):
    """Base exception for business-rule violations."""

    code: str = "FORBIDDEN_OPERATION"


class OrderClosedError(ForbiddenOperationError):
    """Order is DELIVERED or CANCELLED and accepts no further changes."""

    code: str = "ORDER_CLOSED"

    def __init__(self, order_id: str, status: str):
        self.order_id = order_id
        self.status = status
        super().__init__(f"Order {order_id} is {status}")


class OverSupplyError(ForbiddenOperationError):
    """Supplied quantity exceeds the order's remaining quantity."""

    code: str = "OVER_SUPPLY"

    def __init__(self, order_id: str, remaining: int, supplied: int):
        self.order_id = order_id
        self.remaining = remaining
        self.supplied = supplied
        super().__init__(
            f"Supplied quantity {supplied} exceeds order quantity {remaining} "
            f"for order {order_id}"
        )


class InsufficientStockError(ForbiddenOperationError):
    """Sale rejected because stock is below the floor or would be emptied."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, medicine_id: str, available: int, requested: int, reason: str):
        self.medicine_id = medicine_id
        self.available = available
        self.requested = requested
        self.reason = reason
        super().__init__(
            f"Insufficient stock for medicine {medicine_id}: {reason} "
            f"(available={available}, requested={requested})"
        )


class NegativeStockError(ForbiddenOperationError):
    """A ledger mutation would push a stock field below zero."""

    code: str = "NEGATIVE_STOCK"

    def __init__(self, medicine_id: str, field: str, value: int):
        self.medicine_id = medicine_id
        self.field = field
        self.value = value
        super().__init__(
            f"Medicine {medicine_id} {field} would become negative ({value})"
        )


class SaleCancelledError(ForbiddenOperationError):
    """Sale is already cancelled."""

    code: str = "SALE_CANCELLED"

    def __init__(self, sale_id: str):
        self.sale_id = sale_id
        super().__init__(f"Sale {sale_id} is cancelled")


# Preconditions


class PreconditionFailedError(PharmacyKernelError):
    """Base exception for state preconditions blocking a valid request."""

    code: str = "PRECONDITION_FAILED"


class ExpiredMedicineError(PreconditionFailedError):
    """Medicine batch on hand has expired."""

    code: str = "EXPIRED_MEDICINE"

    def __init__(self, medicine_id: str, expiry_date: str):
        self.medicine_id = medicine_id
        self.expiry_date = expiry_date
        super().__init__(f"Medicine {medicine_id} expired on {expiry_date}")


# Malformed requests


class BadRequestError(PharmacyKernelError):
    """Base exception for malformed payloads, raised before any mutation."""

    code: str = "BAD_REQUEST"


class InvalidExpiryDateError(BadRequestError):
    """Expiry date lies in the past."""

    code: str = "INVALID_EXPIRY_DATE"

    def __init__(self, expiry_date: str, today: str):
        self.expiry_date = expiry_date
        self.today = today
        super().__init__(f"Expiry date {expiry_date} cannot be before {today}")


class InvalidPayloadError(BadRequestError):
    """A payload field is missing or out of range."""

    code: str = "INVALID_PAYLOAD"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


# Uniqueness


class ConflictError(PharmacyKernelError):
    """Base exception for uniqueness conflicts."""

    code: str = "CONFLICT"


class DuplicateMedicineError(ConflictError):
    code: str = "DUPLICATE_MEDICINE"

    def __init__(self, name: str, dose_form: str, strength: str):
        self.name = name
        self.dose_form = dose_form
        self.strength = strength
        super().__init__(
            f"Medicine already exists: {name} {dose_form} {strength}"
        )


class DuplicatePartyError(ConflictError):
    code: str = "DUPLICATE_PARTY"

    def __init__(self, party_type: str, name: str):
        self.party_type = party_type
        self.name = name
        super().__init__(f"{party_type.capitalize()} already exists: {name}")


# Concurrency


class ConcurrencyError(PharmacyKernelError):
    """A row lock could not be obtained within the database's limits."""

    code: str = "CONCURRENCY_ERROR"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Could not lock {entity_type} {entity_id}: "
            "held by another transaction"
        )
