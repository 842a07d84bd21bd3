"""
Token Claim Service - Value Encoding

Normalization of addresses, 256-bit unsigned integers and 32-byte digests
at the boundary of the claim core.

Addresses are stored and compared in EIP-55 checksum form so that two
spellings of the same account cannot occupy two ledger slots.
"""

from eth_utils import (
    decode_hex,
    encode_hex,
    is_0x_prefixed,
    is_hex_address,
    to_canonical_address,
    to_checksum_address,
)

UINT256_MAX = 2**256 - 1
UINT256_WIDTH = 32
DIGEST_WIDTH = 32


def normalize_address(address: str) -> str:
    """
    Validate an address and return its checksum form.

    Args:
        address: 0x-prefixed 40 hex digit address, any case

    Returns:
        EIP-55 checksum address

    Raises:
        ValueError: If the value is not a hex address
    """
    if not isinstance(address, str) or not is_0x_prefixed(address) or not is_hex_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return to_checksum_address(address)


def address_to_bytes(address: str) -> bytes:
    """Raw 20-byte form of an address."""
    return to_canonical_address(normalize_address(address))


def check_uint256(value: int, name: str = "value") -> int:
    """
    Ensure an integer fits an unsigned 256-bit slot.

    Raises:
        ValueError: If value is not an int or out of range
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"{name} out of uint256 range: {value}")
    return value


def uint256_to_bytes(value: int) -> bytes:
    """Big-endian 32-byte encoding of an unsigned integer."""
    return check_uint256(value).to_bytes(UINT256_WIDTH, byteorder="big")


def to_digest(value: bytes | str) -> bytes:
    """
    Coerce a 32-byte digest given as bytes or 0x-prefixed hex.

    Raises:
        ValueError: If the value is not exactly 32 bytes
    """
    if isinstance(value, str):
        if not is_0x_prefixed(value):
            raise ValueError(f"Digest must be 0x-prefixed hex: {value!r}")
        try:
            value = decode_hex(value)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid digest hex: {value!r}") from e
    if not isinstance(value, (bytes, bytearray)) or len(value) != DIGEST_WIDTH:
        raise ValueError(f"Digest must be {DIGEST_WIDTH} bytes")
    return bytes(value)


def digest_to_hex(value: bytes) -> str:
    """0x-prefixed lowercase hex of a digest."""
    return encode_hex(to_digest(value))
