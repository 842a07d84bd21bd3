"""
Token Claim Service - Services Package

Provides the claim engine, treasury control, token collaborator and the
serialized claim service that runs them.

Note: Imports are performed lazily to avoid circular import issues.
Use direct imports from submodules when needed:
    from token_claim.services.claim_service import ClaimService
    from token_claim.services.claim_engine import ClaimEngine
    etc.
"""

__all__ = [
    "ClaimService",
    "UnitOfWork",
    "ClaimEngine",
    "ClaimReceipt",
    "TreasuryControl",
    "Token",
    "LedgerToken",
    "TokenBook",
]
