"""
Voter identities.

Identities are opaque keys supplied by the (already authenticated) caller.
Hex account addresses are case-insensitive, so they are brought to their
EIP-55 checksum form before being used as keys; any other string is kept as
given after trimming whitespace.
"""

from typing import Any, Optional

from eth_utils import is_hex_address, to_checksum_address, to_normalized_address

from ..constants import ZERO_IDENTITY
from .errors import InvalidIdentityError


def is_zero_identity(identity: str) -> bool:
    """True for the all-zero account (``0x000…0``)."""
    return is_hex_address(identity) and to_normalized_address(identity) == ZERO_IDENTITY


def normalize_identity(identity: Any) -> str:
    """
    Canonical form of *identity*.

    Raises:
        InvalidIdentityError: for None, non-strings, blank strings and the
            zero account.
    """
    if not isinstance(identity, str):
        raise InvalidIdentityError(f"Identity must be a string, got {type(identity).__name__}")
    value = identity.strip()
    if not value:
        raise InvalidIdentityError("Identity cannot be empty")
    if is_hex_address(value):
        if is_zero_identity(value):
            raise InvalidIdentityError("Zero address is not a valid identity")
        return to_checksum_address(value)
    return value


def try_normalize_identity(identity: Any) -> Optional[str]:
    """Like normalize_identity, but returns None instead of raising."""
    try:
        return normalize_identity(identity)
    except InvalidIdentityError:
        return None


def is_valid_identity(identity: Any) -> bool:
    return try_normalize_identity(identity) is not None
