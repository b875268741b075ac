"""PKR display formatting."""
from decimal import Decimal
from typing import Union

from .money import round_money

CURRENCY = "PKR"
CURRENCY_SYMBOL = "Rs"


def format_pkr(value: Union[str, int, float, Decimal], decimals: bool = False) -> str:
    """
    Format an amount the way the storefront shows prices.

    Whole rupees by default (``Rs 12,500``); ``decimals=True`` keeps paisa
    (``Rs 12,500.50``).
    """
    amount = round_money(value, to_int=not decimals)
    sign = "-" if amount < 0 else ""
    amount = abs(amount)

    formatted = f"{amount:,.2f}" if decimals else f"{int(amount):,}"
    return f"{sign}{CURRENCY_SYMBOL} {formatted}"
