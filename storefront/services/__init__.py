"""Shared money and currency helpers."""
from .currency import CURRENCY, format_pkr
from .money import round_money, to_decimal, to_float

__all__ = [
    "CURRENCY",
    "format_pkr",
    "round_money",
    "to_decimal",
    "to_float",
]
