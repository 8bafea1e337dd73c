"""
Price decomposition for display (IVA 19%, whole Chilean pesos).

Prices in the catalog and cart are tax-inclusive (gross). Net is derived by
dividing by 1.19 and rounding; tax is always ``gross - net`` so that the two
components add back to the gross amount exactly.

Rounding is ROUND_HALF_UP to whole pesos at every call site, matching how
the storefront rounds positive amounts.

These amounts are for responses and emails only. The draft order sent to
Shopify carries unit prices and the discount percentage; Shopify computes
its own discount, which may differ by a peso from ``discount_amount`` here.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Union

TAX_RATE = Decimal('0.19')
TAX_FACTOR = Decimal('1') + TAX_RATE
ONE_PESO = Decimal('1')


@dataclass(frozen=True)
class PriceBreakdown:
    """Gross/net/tax split of one amount, before and after discount."""
    gross: Decimal
    net: Decimal
    tax: Decimal
    discounted_gross: Decimal
    discounted_net: Decimal
    discounted_tax: Decimal

    @property
    def discount_amount(self) -> Decimal:
        return self.gross - self.discounted_gross

    def to_dict(self) -> dict:
        return {
            'gross': int(self.gross),
            'net': int(self.net),
            'tax': int(self.tax),
            'discountedGross': int(self.discounted_gross),
            'discountedNet': int(self.discounted_net),
            'discountedTax': int(self.discounted_tax),
        }


@dataclass(frozen=True)
class LineSummary:
    title: str
    variant_id: Optional[Union[int, str]]
    quantity: int
    unit: PriceBreakdown
    line: PriceBreakdown

    def to_dict(self) -> dict:
        return {
            'title': self.title,
            'variantId': self.variant_id,
            'quantity': self.quantity,
            'unit': self.unit.to_dict(),
            'line': self.line.to_dict(),
        }


@dataclass(frozen=True)
class CartSummary:
    discount: int
    totals: PriceBreakdown
    lines: List[LineSummary] = field(default_factory=list)

    @property
    def discount_amount(self) -> Decimal:
        return self.totals.discount_amount

    def to_dict(self) -> dict:
        return {
            'discountPercentage': self.discount,
            'lines': [line.to_dict() for line in self.lines],
            'totals': self.totals.to_dict(),
            'discountAmount': int(self.discount_amount),
        }


def round_pesos(amount: Decimal) -> Decimal:
    """Round to whole pesos, ties away from zero."""
    return Decimal(amount).quantize(ONE_PESO, rounding=ROUND_HALF_UP)


def net_from_gross(gross) -> Decimal:
    """Tax-exclusive amount for a tax-inclusive one."""
    return round_pesos(Decimal(gross) / TAX_FACTOR)


def apply_discount(gross, discount: int) -> Decimal:
    """Gross amount after a percentage discount."""
    factor = Decimal('1') - Decimal(discount) / Decimal('100')
    return round_pesos(Decimal(gross) * factor)


def decompose_price(gross, discount: int = 0) -> PriceBreakdown:
    """
    Split a tax-inclusive amount into net and tax, with and without discount.

    Args:
        gross: Tax-inclusive amount in whole pesos
        discount: Discount percentage (0-100)

    Returns:
        PriceBreakdown where ``net + tax == gross`` for both the original and
        the discounted amount.
    """
    gross = round_pesos(Decimal(gross))
    net = net_from_gross(gross)
    discounted_gross = apply_discount(gross, discount)
    discounted_net = net_from_gross(discounted_gross)
    return PriceBreakdown(
        gross=gross,
        net=net,
        tax=gross - net,
        discounted_gross=discounted_gross,
        discounted_net=discounted_net,
        discounted_tax=discounted_gross - discounted_net,
    )


def summarize_cart(items: Iterable, discount: int) -> CartSummary:
    """
    Build per-line and total breakdowns for a cart.

    Totals are decomposed from the summed gross line totals, not by adding
    per-line nets, so the cart total never carries per-line rounding drift.
    """
    lines = []
    total_gross = Decimal('0')
    for item in items:
        line_gross = Decimal(item.price) * item.quantity
        lines.append(LineSummary(
            title=item.title,
            variant_id=item.variant_id,
            quantity=item.quantity,
            unit=decompose_price(item.price, discount),
            line=decompose_price(line_gross, discount),
        ))
        total_gross += line_gross

    return CartSummary(
        discount=discount,
        lines=lines,
        totals=decompose_price(total_gross, discount),
    )
