"""
Per-segment write buffering for the HPCE SDK.

Each segment of the engine gets a SegmentBuffer that accumulates triple
operations and sends them as one bulk-load request when the buffer reaches
its range or when flushed explicitly. A failed bulk load is retried with the
same batch until it succeeds.

Invariants:
    - A buffer that reaches ``range`` operations is flushed before the
      record() that filled it returns
    - A flush that times out while a triple is being queued still leaves
      both halves of that triple queued
    - A batch is never dropped, split or reordered by a retry
    - After a successful flush the pending count is exactly 0
    - record() and flush() on one buffer are serialized; buffers for
      different segments are independent

How to change safely:
    - Keep retries blocking; callers rely on flush() meaning "delivered"
    - Only a RetryPolicy deadline may end the retry loop early, and it must
      leave the batch pending
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterator, List, Optional, Sequence

from .errors import FlushTimeoutError, TransportError
from .router import segment_for
from .terms import TripleOp, render_batch
from .transport import StoreTransport, base_url

if TYPE_CHECKING:
    from .config import EngineSettings

logger = logging.getLogger(__name__)

DEFAULT_RANGE = 10000


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for bulk loads.

    Attributes:
        interval_seconds: Fixed pause between attempts
        deadline_seconds: Give up after this long (None = retry forever)
    """

    interval_seconds: float = 0.5
    deadline_seconds: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> RetryPolicy:
        """Derive the policy from EngineSettings."""
        return cls(
            interval_seconds=settings.retry_interval_ms / 1000.0,
            deadline_seconds=settings.flush_deadline_seconds,
        )


@dataclass(frozen=True)
class SegmentAddress:
    """Network location of one segment.

    Attributes:
        segment: Segment number reported by the engine
        host: Segment host
        port: Segment load port
    """

    segment: int
    host: str
    port: int

    @property
    def url(self) -> str:
        return base_url(self.host, self.port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class BufferState(Enum):
    """Lifecycle of a segment buffer between flushes."""

    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    FLUSHING = "flushing"


class SegmentBuffer:
    """Accumulates operations for one segment and bulk-loads them.

    Thread safety:
        A re-entrant lock guards the pending batch, so the automatic flush
        triggered from record() runs under the same lock as the append.

    Example:
        >>> buf = SegmentBuffer(SegmentAddress(0, "localhost", 3001), transport)
        >>> buf.record(TripleOp.add_subject(1, 10, 5, 2, 20))
        >>> buf.flush()
        1
    """

    def __init__(
        self,
        address: SegmentAddress,
        transport: StoreTransport,
        range: int = DEFAULT_RANGE,
        retry: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize a buffer.

        Args:
            address: Segment location
            transport: Shared store transport
            range: Number of operations that triggers an automatic flush
            retry: Retry policy for failed bulk loads
            sleep: Pause function (tests substitute a no-op)
            clock: Monotonic clock used for the retry deadline
        """
        if range <= 0:
            raise ValueError(f"range must be positive, got {range}")
        self.address = address
        self.range = range
        self.retry = retry or RetryPolicy()
        self._transport = transport
        self._sleep = sleep
        self._clock = clock
        self._pending: List[TripleOp] = []
        self._state = BufferState.EMPTY
        self._lock = threading.RLock()
        self._flush_count = 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def state(self) -> BufferState:
        return self._state

    @property
    def flush_count(self) -> int:
        """Number of successful bulk loads sent by this buffer."""
        return self._flush_count

    def pending(self) -> List[TripleOp]:
        """Snapshot of operations waiting to be sent."""
        with self._lock:
            return list(self._pending)

    def record(self, op: TripleOp, autoflush: bool = True) -> None:
        """Append an operation, flushing once the buffer reaches its range.

        With autoflush off the operation is only queued; the next record()
        or flush() sends it.
        """
        with self._lock:
            self._pending.append(op)
            self._state = BufferState.ACCUMULATING
            if autoflush and len(self._pending) >= self.range:
                self._flush_locked()

    def flush(self) -> int:
        """Send every pending operation as one bulk load.

        Blocks until the store accepts the batch, retrying at a fixed
        interval. An empty buffer sends nothing.

        Returns:
            Number of operations sent

        Raises:
            FlushTimeoutError: If the retry policy has a deadline and it passed
        """
        with self._lock:
            return self._flush_locked()

    def _flush_locked(self) -> int:
        if not self._pending:
            return 0

        self._state = BufferState.FLUSHING
        body = render_batch(self._pending)
        started = self._clock()
        attempts = 0

        while True:
            attempts += 1
            try:
                response = self._transport.post(self.address.url, "/load_data", body)
                if response.ok:
                    break
                reason = f"status {response.status}"
            except TransportError as e:
                reason = str(e)

            logger.warning(
                "Error flushing data to segment",
                extra={
                    "segment": self.address.segment,
                    "address": str(self.address),
                    "attempt": attempts,
                    "pending": len(self._pending),
                    "reason": reason,
                },
            )

            deadline = self.retry.deadline_seconds
            if deadline is not None and self._clock() - started >= deadline:
                self._state = BufferState.ACCUMULATING
                raise FlushTimeoutError(str(self.address), attempts, len(self._pending))

            self._sleep(self.retry.interval_seconds)

        sent = len(self._pending)
        self._pending = []
        self._state = BufferState.EMPTY
        self._flush_count += 1
        logger.debug(
            "Flushed segment",
            extra={"segment": self.address.segment, "operations": sent, "attempts": attempts},
        )
        return sent


class SegmentSet:
    """The buffers of one open session, indexed by segment position.

    Routes each half of a triple to the buffer owning its item.
    """

    def __init__(self, buffers: Sequence[SegmentBuffer]) -> None:
        if not buffers:
            raise ValueError("SegmentSet requires at least one segment")
        self._buffers = list(buffers)

    def __len__(self) -> int:
        return len(self._buffers)

    def __getitem__(self, index: int) -> SegmentBuffer:
        return self._buffers[index]

    def __iter__(self) -> Iterator[SegmentBuffer]:
        return iter(self._buffers)

    @property
    def pending_count(self) -> int:
        return sum(buf.pending_count for buf in self._buffers)

    def buffer_for(self, item: int) -> SegmentBuffer:
        return self._buffers[segment_for(item, len(self._buffers))]

    def route(self, op: TripleOp) -> SegmentBuffer:
        """Record an operation on the buffer that owns it."""
        buf = self.buffer_for(op.owner_item)
        buf.record(op)
        return buf

    def add_triple(self, st: int, si: int, a: int, ot: int, oi: int) -> None:
        """Queue the subject-keyed and object-keyed add records.

        Raises:
            FlushTimeoutError: If a filled buffer misses its deadline; both
                halves stay queued
        """
        self._route_pair(
            TripleOp.add_subject(st, si, a, ot, oi),
            TripleOp.add_object(st, si, a, ot, oi),
        )

    def delete_triple(self, st: int, si: int, ot: int, oi: int) -> None:
        """Queue the subject-keyed and object-keyed delete records."""
        self._route_pair(
            TripleOp.delete_subject(st, si, ot, oi),
            TripleOp.delete_object(st, si, ot, oi),
        )

    def _route_pair(self, first: TripleOp, second: TripleOp) -> None:
        try:
            self.route(first)
        except FlushTimeoutError:
            self.buffer_for(second.owner_item).record(second, autoflush=False)
            raise
        self.route(second)

    def flush(self) -> int:
        """Flush every segment in order; returns operations sent."""
        return sum(buf.flush() for buf in self._buffers)
