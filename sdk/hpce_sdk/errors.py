"""
Error types for the HPCE SDK.

This module defines all exception types raised by the SDK:
- HpceError: Base exception
- TransportError: HTTP exchange with a store endpoint failed
- TopologyError: Segment layout could not be retrieved
- NotOpenError: Engine used without an open session
- StoreUnavailableError: Deletion query rejected by the store
- InvalidExpressionError: Deletion expression does not select subjects
- RangeError: Composite subject id does not fit
- FlushTimeoutError: Bulk write retries exceeded their deadline

Invariants:
    - All errors inherit from HpceError
    - Errors include context for debugging
    - Transient write failures never surface as errors unless a deadline is set
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class HpceError(Exception):
    """Base exception for all HPCE SDK errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "HPCE_ERROR"
        self.details = details or {}


class TransportError(HpceError):
    """An HTTP request to the store failed.

    Raised when:
    - The endpoint is unreachable or times out
    - The response has a non-2xx HTTP code
    - The body is not a JSON object
    """

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message, code="TRANSPORT_ERROR", details={"url": url})
        self.url = url


class TopologyError(HpceError):
    """The segment layout could not be retrieved at open time."""

    def __init__(self, message: str, address: Optional[str] = None) -> None:
        super().__init__(message, code="TOPOLOGY_ERROR", details={"address": address})
        self.address = address


class NotOpenError(HpceError):
    """A write, delete or flush was attempted without an open session."""

    def __init__(self, message: str = "Engine is not open") -> None:
        super().__init__(message, code="NOT_OPEN")


class StoreUnavailableError(HpceError):
    """A deletion query failed: non-zero status or no answer (status None)."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message, code="STORE_UNAVAILABLE", details={"status": status})
        self.status = status


class InvalidExpressionError(HpceError):
    """A deletion expression matched receivers that are not subjects."""

    def __init__(self, expression: str, receiver_class: Optional[str] = None) -> None:
        super().__init__(
            f"Delete expression does not specify subjects: {expression!r}",
            code="INVALID_EXPRESSION",
            details={"expression": expression, "receiver_class": receiver_class},
        )
        self.expression = expression
        self.receiver_class = receiver_class


class RangeError(HpceError):
    """A value does not fit the bit width or item range it is packed into."""

    def __init__(self, message: str, value: Optional[int] = None, limit: Optional[int] = None) -> None:
        super().__init__(message, code="RANGE_ERROR", details={"value": value, "limit": limit})
        self.value = value
        self.limit = limit


class FlushTimeoutError(HpceError):
    """A bulk write kept failing past the retry deadline.

    The pending batch is left intact so a later flush resends it.
    """

    def __init__(self, address: str, attempts: int, pending: int) -> None:
        super().__init__(
            f"Flush to segment {address} did not succeed after {attempts} attempts",
            code="FLUSH_TIMEOUT",
            details={"address": address, "attempts": attempts, "pending": pending},
        )
        self.address = address
        self.attempts = attempts
        self.pending = pending
