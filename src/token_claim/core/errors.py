"""
Token Claim Service - Error Taxonomy

Every rejection raised by the claim core. Each error is scoped to the
single invocation that raised it and carries a stable code plus the HTTP
status the API reports it with.
"""


class ClaimServiceError(Exception):
    """Base exception for claim service rejections."""

    code = "claim_service_error"
    http_status = 400

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code.replace("_", " "))

    def to_dict(self) -> dict[str, str]:
        """Serialize for API error responses."""
        return {"error": self.code, "detail": str(self)}


class InvalidTimeWindow(ClaimServiceError):
    """Event start time is after its end time."""

    code = "invalid_time_window"
    http_status = 400


class UnknownEvent(ClaimServiceError):
    """Event index does not reference a registered event."""

    code = "unknown_event"
    http_status = 404


class NotStarted(ClaimServiceError):
    """Claim window has not opened yet."""

    code = "not_started"
    http_status = 409


class Expired(ClaimServiceError):
    """Claim window has closed."""

    code = "expired"
    http_status = 410


class AlreadyClaimed(ClaimServiceError):
    """Recipient already claimed from this event."""

    code = "already_claimed"
    http_status = 409


class ProofInvalid(ClaimServiceError):
    """Merkle proof does not recompute the event root."""

    code = "proof_invalid"
    http_status = 400


class InsufficientBalance(ClaimServiceError):
    """Treasury holds less than the requested amount."""

    code = "insufficient_balance"
    http_status = 409


class NotAuthorized(ClaimServiceError):
    """Caller is not the administrator."""

    code = "not_authorized"
    http_status = 403


class TransferFailed(ClaimServiceError):
    """Token collaborator refused the transfer."""

    code = "transfer_failed"
    http_status = 502
