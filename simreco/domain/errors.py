"""Error taxonomy of the similarity engine.

Degraded-mode errors (`VectorNotReady`, `VectorStoreUnavailable`) are caught by
the recommendation facade and never reach API callers. `EmbeddingUnavailable`
is contained per item during sync. `NotFound` is the only error a
recommendation request surfaces.
"""

from typing import Any, Dict, Optional


class RecoEngineError(Exception):
    """Base exception for engine errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        transient: bool = False,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
            transient: True when retries were exhausted on an outage
                (as opposed to a rejection of this particular input)
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.transient = transient

    @property
    def kind(self) -> str:
        """Stable error kind name, used as the failure reason in sync reports."""
        return type(self).__name__


class EmbeddingUnavailable(RecoEngineError):
    """Raised when the embedding provider cannot produce a vector."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, *, transient: bool = False):
        super().__init__(message=message, status_code=503, details=details, transient=transient)


class VectorStoreUnavailable(RecoEngineError):
    """Raised when the vector store is unreachable or rejects an operation."""

    def __init__(self, operation: str, error: Optional[Exception] = None, *, transient: bool = False):
        message = f"Vector store unavailable during '{operation}'"
        details: Dict[str, Any] = {"operation": operation}
        if error is not None:
            message = f"{message}: {error}"
            details["error"] = str(error)
            details["error_type"] = type(error).__name__
        super().__init__(message=message, status_code=503, details=details, transient=transient)


class VectorNotReady(RecoEngineError):
    """Raised when a product has no successfully synced vector."""

    def __init__(self, product_id: str, status: Optional[str] = None):
        message = f"Product '{product_id}' has no synced vector (status={status or 'absent'})"
        super().__init__(
            message=message,
            status_code=409,
            details={"product_id": product_id, "status": status},
        )


class NotFound(RecoEngineError):
    """Raised when a product does not exist in the catalog."""

    def __init__(self, product_id: str):
        super().__init__(
            message=f"Product '{product_id}' not found",
            status_code=404,
            details={"product_id": product_id},
        )


class SyncInProgress(RecoEngineError):
    """Raised when another sync run holds the namespace lock."""

    def __init__(self, namespace: str):
        super().__init__(
            message=f"A sync run is already in progress for namespace '{namespace}'",
            status_code=409,
            details={"namespace": namespace},
        )
