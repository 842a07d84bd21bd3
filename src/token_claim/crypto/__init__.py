"""
Token Claim Service - Cryptographic Utilities

Provides airdrop leaf hashing and Merkle proof verification.
"""

from token_claim.crypto.encoding import (
    UINT256_MAX,
    digest_to_hex,
    normalize_address,
    to_digest,
)
from token_claim.crypto.merkle import (
    compute_leaf_hash,
    compute_root_from_proof,
    hash_pair,
    verify_allocation,
    verify_proof,
)

__all__ = [
    "UINT256_MAX",
    "digest_to_hex",
    "normalize_address",
    "to_digest",
    "compute_leaf_hash",
    "compute_root_from_proof",
    "hash_pair",
    "verify_allocation",
    "verify_proof",
]
