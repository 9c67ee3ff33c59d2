"""GST and total price derivation for catalog products."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

# Flat GST rate applied when a product has GST enabled
GST_PERCENTAGE = 5
GST_RATE = Decimal("0.05")

# Largest amount a NUMERIC(12,2) money column holds
MAX_PRICE = Decimal("9999999999.99")

_CENTS = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    """Round a monetary value to 2 decimal places, halves away from zero."""
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricingBreakdown:
    """Derived pricing fields for a product.

    Attributes:
        gst_percentage: 5 when GST applies, else 0
        gst_amount: Tax on the sell price, rounded to 2 places
        total_price: Sell price plus tax, rounded to 2 places
    """

    gst_percentage: int
    gst_amount: Decimal
    total_price: Decimal


def calculate_pricing(sell_price: Decimal | float | int, gst_enabled: bool) -> PricingBreakdown:
    """Derive tax and total price from a base price.

    The caller is responsible for passing a finite, non-negative price.

    Args:
        sell_price: Base (pre-tax) price.
        gst_enabled: Whether GST is applied.

    Returns:
        PricingBreakdown with gst_percentage, gst_amount and total_price.
    """
    price = sell_price if isinstance(sell_price, Decimal) else Decimal(str(sell_price))

    if not gst_enabled:
        return PricingBreakdown(
            gst_percentage=0,
            gst_amount=Decimal("0.00"),
            total_price=round_money(price),
        )

    gst_amount = round_money(price * GST_RATE)
    return PricingBreakdown(
        gst_percentage=GST_PERCENTAGE,
        gst_amount=gst_amount,
        total_price=round_money(price + gst_amount),
    )
