"""
Token Claim Service - Merkle Proof Verification

Leaf hashing and inclusion-proof verification for airdrop allocations.

Conventions:
- A leaf is keccak256(recipient[20 bytes] ++ amount[32 bytes big-endian]),
  the packed (address, uint256) layout used by common off-chain airdrop
  tooling when it builds the tree.
- Internal nodes hash the two children in ascending byte order, so a
  proof is a plain list of sibling digests with no left/right markers.

Trees and proofs are produced off-system; only verification lives here.
"""

from collections.abc import Iterable, Sequence

from eth_utils import keccak

from token_claim.crypto.encoding import (
    address_to_bytes,
    digest_to_hex,
    to_digest,
    uint256_to_bytes,
)

Digest = bytes
ProofInput = Sequence[bytes | str]


def compute_leaf_hash(recipient: str, amount: int) -> Digest:
    """
    Compute the Merkle leaf for a single allocation.

    Args:
        recipient: Recipient address (0x-prefixed hex, any case)
        amount: Allocation amount in token base units

    Returns:
        32-byte leaf digest

    Raises:
        ValueError: If recipient or amount is malformed
    """
    return keccak(address_to_bytes(recipient) + uint256_to_bytes(amount))


def hash_pair(a: Digest, b: Digest) -> Digest:
    """
    Combine two nodes into their parent.

    The smaller digest always goes first, which makes the result
    independent of which side each child sat on.
    """
    if b < a:
        a, b = b, a
    return keccak(a + b)


def normalize_proof(proof: Iterable[bytes | str]) -> list[Digest]:
    """Coerce every proof element to 32 raw bytes."""
    return [to_digest(element) for element in proof]


def compute_root_from_proof(leaf: bytes | str, proof: ProofInput) -> Digest:
    """
    Fold a proof into the root it implies for a leaf.

    Args:
        leaf: Leaf digest
        proof: Ordered sibling digests, leaf level first

    Returns:
        Recomputed root digest
    """
    current = to_digest(leaf)

    for sibling in normalize_proof(proof):
        current = hash_pair(current, sibling)

    return current


def verify_proof(leaf: bytes | str, proof: ProofInput, root: bytes | str) -> bool:
    """
    Verify a Merkle inclusion proof against a committed root.

    An empty proof is valid only when the leaf is itself the root
    (single-leaf tree).

    Args:
        leaf: Leaf digest
        proof: Ordered sibling digests
        root: Expected Merkle root

    Returns:
        True if the proof recomputes the root
    """
    return compute_root_from_proof(leaf, proof) == to_digest(root)


def verify_allocation(
    recipient: str,
    amount: int,
    proof: ProofInput,
    root: bytes | str,
) -> bool:
    """Verify that (recipient, amount) is committed under root."""
    return verify_proof(compute_leaf_hash(recipient, amount), proof, root)


def proof_to_hex(proof: ProofInput) -> list[str]:
    """Serialize a proof to 0x-prefixed hex strings."""
    return [digest_to_hex(element) for element in normalize_proof(proof)]
