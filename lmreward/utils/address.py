"""
Address helpers built on eth_utils.
"""

from typing import Any

from eth_utils import is_address, keccak, to_checksum_address

from ..constants import ZERO_ADDRESS
from ..exceptions import InvalidAddressError


def to_address(value: Any) -> str:
    """
    Normalize *value* to an EIP-55 checksummed address.

    Accepts hex strings (any casing) and objects exposing ``.address``.
    """
    if hasattr(value, "address"):
        value = value.address
    if not isinstance(value, (str, bytes)) or not is_address(value):
        raise InvalidAddressError(f"Not a valid address: {value!r}")
    return to_checksum_address(value)


def derive_address(label: str) -> str:
    """Deterministic address for an in-process component, from its label."""
    return to_checksum_address(keccak(text=label)[-20:])


def is_zero_address(address: str) -> bool:
    return address is None or address.lower() == ZERO_ADDRESS
