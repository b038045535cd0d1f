"""Integer arithmetic for order prices, commission and angel income.

All prices, amounts, and balances use int (cents / fen). No float, no Decimal.
"""


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 8000 -> '¥80.00', -1250 -> '-¥12.50'."""
    if cents < 0:
        abs_cents = -cents
        return f"-¥{abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"¥{cents // 100:,}.{cents % 100:02d}"


def calculate_commission(price: int, commission_bps: int) -> int:
    """Platform commission with ceiling division (platform never loses).

    commission = ceil(price * commission_bps / 10000)
    """
    if price == 0 or commission_bps == 0:
        return 0
    return (price * commission_bps + 9999) // 10000


def calculate_angel_income(price: int, commission_bps: int) -> int:
    """What the angel is credited for an order: price minus platform commission."""
    if not (0 <= commission_bps <= 10000):
        raise ValueError(f"commission_bps must be 0-10000, got {commission_bps}")
    return price - calculate_commission(price, commission_bps)
