"""
lmreward utilities: ordered address sets, address normalization and
fixed-point helpers.
"""

from .address import derive_address, is_zero_address, to_address
from .fixed_point import ceil_div, format_units, mul_base, normalize_borrow
from .ordered_set import AddressSet

__all__ = [
    "AddressSet",
    "ceil_div",
    "derive_address",
    "format_units",
    "is_zero_address",
    "mul_base",
    "normalize_borrow",
    "to_address",
]
