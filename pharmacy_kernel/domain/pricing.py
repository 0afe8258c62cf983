"""
Pricing -- pure markup, monotonic selling price, and profit arithmetic.

Responsibility:
    Every monetary number a reconciliation writes is computed here from
    plain Decimals.  The functions hold no state and perform no I/O, so the
    reconcilers, the Hypothesis properties, and the reporting layer all see
    the same arithmetic.

Architecture position:
    Kernel > Domain -- pure functional core.  MUST NOT import from models/,
    services/, selectors/, or db/.

Invariants enforced:
    - PRICE_MONOTONICITY: ``next_selling_price`` never returns less than the
      current selling price.

Failure modes:
    - ZeroDivisionError is never raised: margins against a zero purchase
      price are reported as zero, and per-issue-unit prices require a
      positive factor (validated upstream).
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

HUNDRED = Decimal("100")
ZERO = Decimal("0")


@dataclass(frozen=True)
class PricingPolicy:
    """
    Markup and rounding rules applied on every purchase.

    Attributes:
        markup_rate: Fraction added to the purchase price to produce the
            selling price candidate (0.40 means +40%).
        money_places: Decimal places kept on derived monetary values.
    """

    markup_rate: Decimal = Decimal("0.40")
    money_places: int = 4

    def __post_init__(self) -> None:
        if self.markup_rate < ZERO:
            raise ValueError(f"markup_rate must be >= 0, got {self.markup_rate}")
        if self.money_places < 0:
            raise ValueError(f"money_places must be >= 0, got {self.money_places}")

    @property
    def quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.money_places)

    def quantize(self, value: Decimal) -> Decimal:
        """Round a derived monetary value half-up to ``money_places``."""
        return Decimal(value).quantize(self.quantum, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    """Prices, profits and margins derived from one purchase.

    Selling prices are the values the medicine ends up with after the
    never-decrease rule, so profits and margins reflect the price the
    customer will actually pay.
    """

    pack_size_purchase_price: Decimal
    issue_unit_purchase_price: Decimal
    pack_size_selling_price: Decimal
    issue_unit_selling_price: Decimal
    profit_per_pack_size: Decimal
    profit_per_issue_unit: Decimal
    profit_margin_percentage_per_pack_size: Decimal
    profit_margin_percentage_per_issue_unit: Decimal


def markup_price(purchase_price: Decimal, policy: PricingPolicy) -> Decimal:
    """Selling price candidate: purchase price plus the policy markup."""
    return policy.quantize(purchase_price * (Decimal(1) + policy.markup_rate))


def per_issue_unit(pack_price: Decimal, factor: int, policy: PricingPolicy) -> Decimal:
    """Split a pack-size price across ``factor`` issue units."""
    return policy.quantize(Decimal(pack_price) / Decimal(factor))


def next_selling_price(current: Decimal | None, candidate: Decimal) -> Decimal:
    """Adopt ``candidate`` only if it is strictly greater than ``current``."""
    if current is None or candidate > current:
        return candidate
    return current


def profit(selling: Decimal, purchase: Decimal) -> Decimal:
    return selling - purchase


def margin_percentage(
    selling: Decimal, purchase: Decimal, policy: PricingPolicy
) -> Decimal:
    """(selling - purchase) / purchase * 100, zero when purchase is zero."""
    if purchase == ZERO:
        return ZERO
    return policy.quantize((selling - purchase) / purchase * HUNDRED)


def price_purchase(
    price_per_pack_size: Decimal,
    issue_unit_per_pack_size: int,
    current_pack_size_selling_price: Decimal | None,
    current_issue_unit_selling_price: Decimal | None,
    policy: PricingPolicy,
) -> PriceBreakdown:
    """
    Derive every price a purchase writes onto the medicine and the purchase.

    The pack-size selling price is the marked-up candidate or the current
    price, whichever is higher.  The issue-unit candidate is the *adopted*
    pack-size selling price split by the factor, subject to its own
    never-decrease check.

    Preconditions:
        - ``price_per_pack_size`` > 0 and ``issue_unit_per_pack_size`` > 0.
    """
    pack_purchase = policy.quantize(price_per_pack_size)
    issue_purchase = per_issue_unit(pack_purchase, issue_unit_per_pack_size, policy)

    pack_selling = next_selling_price(
        current_pack_size_selling_price,
        markup_price(pack_purchase, policy),
    )
    issue_selling = next_selling_price(
        current_issue_unit_selling_price,
        per_issue_unit(pack_selling, issue_unit_per_pack_size, policy),
    )

    return PriceBreakdown(
        pack_size_purchase_price=pack_purchase,
        issue_unit_purchase_price=issue_purchase,
        pack_size_selling_price=pack_selling,
        issue_unit_selling_price=issue_selling,
        profit_per_pack_size=profit(pack_selling, pack_purchase),
        profit_per_issue_unit=profit(issue_selling, issue_purchase),
        profit_margin_percentage_per_pack_size=margin_percentage(
            pack_selling, pack_purchase, policy
        ),
        profit_margin_percentage_per_issue_unit=margin_percentage(
            issue_selling, issue_purchase, policy
        ),
    )


def line_total(unit_price: Decimal, quantity: int, policy: PricingPolicy) -> Decimal:
    """Price of ``quantity`` units at ``unit_price``."""
    return policy.quantize(Decimal(unit_price) * quantity)
