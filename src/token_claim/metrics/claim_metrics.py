"""
Token Claim Service - Claim Metrics

Prometheus metrics for the claim service.

Metrics Categories:
- Claim outcomes and claimed volume
- Event registration and root corrections
- Treasury movements
- Operation latency
"""

from prometheus_client import Counter, Histogram, Info


class ClaimMetrics:
    """
    Centralized metrics for the claim service.

    Provides visibility into:
    - Claim success and rejection reasons
    - Event lifecycle operations
    - Treasury withdrawals and deposits
    """

    def __init__(self) -> None:
        """Initialize all claim metrics."""
        self._init_claim_metrics()
        self._init_event_metrics()
        self._init_treasury_metrics()
        self._init_info_metrics()

    def _init_claim_metrics(self) -> None:
        """Initialize claim metrics."""
        self.claims_total = Counter(
            "token_claim_claims_total",
            "Claim attempts by outcome",
            ["outcome"],
        )

        self.claimed_amount = Counter(
            "token_claim_claimed_amount_total",
            "Token base units paid out through claims",
            ["token"],
        )

        self.operation_duration = Histogram(
            "token_claim_operation_duration_seconds",
            "Duration of claim service operations",
            ["operation"],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
        )

    def _init_event_metrics(self) -> None:
        """Initialize event lifecycle metrics."""
        self.events_registered = Counter(
            "token_claim_events_registered_total",
            "Claim events registered",
        )

        self.root_updates = Counter(
            "token_claim_root_updates_total",
            "Merkle root corrections applied",
        )

    def _init_treasury_metrics(self) -> None:
        """Initialize treasury metrics."""
        self.treasury_movements = Counter(
            "token_claim_treasury_movements_total",
            "Treasury withdrawals and deposits",
            ["direction"],
        )

    def _init_info_metrics(self) -> None:
        """Initialize info metrics."""
        self.service_info = Info(
            "token_claim_service",
            "Claim service information",
        )

    # Convenience methods

    def record_claim(self, token: str, amount: int) -> None:
        """Record successful claim."""
        self.claims_total.labels(outcome="success").inc()
        # Counter values are floats; very large uint256 amounts lose precision
        self.claimed_amount.labels(token=token).inc(float(amount))

    def record_claim_rejected(self, reason: str) -> None:
        """Record rejected claim."""
        self.claims_total.labels(outcome=reason).inc()

    def record_event_registered(self) -> None:
        self.events_registered.inc()

    def record_root_update(self) -> None:
        self.root_updates.inc()

    def record_treasury_movement(self, direction: str) -> None:
        self.treasury_movements.labels(direction=direction).inc()

    def observe_operation(self, operation: str, duration: float) -> None:
        self.operation_duration.labels(operation=operation).observe(duration)

    def set_service_info(
        self,
        version: str,
        environment: str,
        administrator: str,
    ) -> None:
        """Set service info labels."""
        self.service_info.info({
            "version": version,
            "environment": environment,
            "administrator": administrator,
        })


# Singleton instance
_claim_metrics: ClaimMetrics | None = None


def get_claim_metrics() -> ClaimMetrics:
    """Get global claim metrics instance."""
    global _claim_metrics
    if _claim_metrics is None:
        _claim_metrics = ClaimMetrics()
    return _claim_metrics
