"""
Token Claim Service

Merkle airdrop claims: event registry, proof verification, claim ledger
and treasury recovery.
"""

__version__ = "1.0.0"
