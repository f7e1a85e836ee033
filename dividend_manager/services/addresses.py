"""Account address validation."""
from __future__ import annotations

from eth_typing import ChecksumAddress
from eth_utils import is_address, to_checksum_address

from dividend_manager.core.errors import InvalidAddressError


def is_valid_address(value: object) -> bool:
    return isinstance(value, str) and is_address(value.strip())


def normalize_address(value: object) -> ChecksumAddress:
    """Return the checksum form of ``value`` or raise :class:`InvalidAddressError`."""

    if not is_valid_address(value):
        raise InvalidAddressError(f"'{value}' is not a valid address")
    return to_checksum_address(value.strip())  # type: ignore[union-attr]


__all__ = ["is_valid_address", "normalize_address"]
