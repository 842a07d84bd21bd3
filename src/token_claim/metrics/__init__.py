"""
Token Claim Service - Metrics Module

Prometheus metrics for claims, event lifecycle and treasury movements.
"""

from token_claim.metrics.claim_metrics import (
    ClaimMetrics,
    get_claim_metrics,
)

__all__ = [
    "ClaimMetrics",
    "get_claim_metrics",
]
