"""Integer fixed-point helpers. Values are ints scaled by BASE or DOUBLE."""

from ..constants import BASE


def ceil_div(a: int, b: int) -> int:
    if b <= 0:
        raise ZeroDivisionError("ceil_div by non-positive divisor")
    return -(-a // b)


def mul_base(a: int, b: int) -> int:
    """a * b / BASE, rounded down."""
    return a * b // BASE


def normalize_borrow(amount: int, borrow_index: int) -> int:
    """Borrow amount expressed in index-normalized shares (0 for a zero index)."""
    if borrow_index == 0:
        return 0
    return amount * BASE // borrow_index


def format_units(value: int, decimals: int = 18, precision: int = 6) -> str:
    """Render a fixed-point integer for humans, e.g. 1500000000000000000 -> '1.5'."""
    sign = "-" if value < 0 else ""
    value = abs(value)
    whole, frac = divmod(value, 10**decimals)
    if precision <= 0 or frac == 0:
        return f"{sign}{whole}"
    frac_str = str(frac).rjust(decimals, "0")[:precision].rstrip("0")
    return f"{sign}{whole}.{frac_str}" if frac_str else f"{sign}{whole}"
