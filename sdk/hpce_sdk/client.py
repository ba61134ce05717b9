"""
Engine client for the HPCE SDK.

This module provides the main client interface:
- Engine: Connection to a sharded correlation engine
- EngineStats: Counters for accepted and skipped triples
- TripleObserver: Hook invoked once per accepted triple

Example:
    >>> with Engine("localhost", 3000) as engine:
    ...     engine.apply("Person", "Alice", "likes", "Movie", "Matrix")
    ...     engine.save()

Invariants:
    - Every accepted apply() queues exactly two operations, one on the
      segment owning the object item and one on the segment owning the
      subject item
    - apply() with any absent field queues nothing and counts a skip
    - Symbol caches live as long as the Engine, across open()/close()
    - Topology is replaced only by open(), never mid-flush
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, runtime_checkable

import httpx

from .config import EngineSettings
from .errors import NotOpenError, RangeError, TopologyError, TransportError
from .resolver import Symbol, SymbolResolver
from .segment import DEFAULT_RANGE, RetryPolicy, SegmentAddress, SegmentBuffer, SegmentSet
from .terms import ItemRange, Role, action_check, type_check
from .transport import StoreTransport, base_url
from .walker import DeletionWalker

logger = logging.getLogger(__name__)


@runtime_checkable
class TripleObserver(Protocol):
    """Receives the resolved ids of every accepted triple."""

    def operate(self, st: int, si: int, a: int, ot: int, oi: int) -> None: ...


class ProgressObserver:
    """Logs a running count every ``cycle`` accepted triples."""

    def __init__(self, cycle: int = 10000) -> None:
        if cycle <= 0:
            raise ValueError(f"cycle must be positive, got {cycle}")
        self.cycle = cycle
        self.count = 0

    def operate(self, st: int, si: int, a: int, ot: int, oi: int) -> None:
        self.count += 1
        if self.count % self.cycle == 0:
            logger.info("Triples applied", extra={"count": self.count})


@dataclass
class EngineStats:
    """Per-session triple counters.

    Attributes:
        applied: Triples queued to segments
        skipped: apply() calls dropped for an absent field
    """

    applied: int = 0
    skipped: int = 0


class Engine:
    """Client for loading triples into a sharded correlation engine.

    Resolves symbolic names to ids, routes both halves of each triple to
    their owning segments and buffers them for bulk loading.

    Example:
        >>> engine = Engine("localhost", 3000)
        >>> engine.apply("Person", "Alice", "likes", "Movie", "Matrix")
        True
        >>> engine.delete_subject(1, 10)
        1
        >>> engine.shutdown()
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 3000,
        range: int = DEFAULT_RANGE,
        *,
        retry: Optional[RetryPolicy] = None,
        client: Optional[httpx.Client] = None,
        request_timeout: float = 30.0,
        observer: Optional[TripleObserver] = None,
        sleep: Callable[[float], None] = time.sleep,
        autoopen: bool = True,
    ) -> None:
        """Initialize the engine client.

        Args:
            host: Engine server host (typically segment 0)
            port: Engine server port
            range: Operations buffered per segment before flushing
            retry: Retry policy for failed bulk loads
            client: Optional HTTP client (one is created and owned otherwise)
            request_timeout: Timeout for a created HTTP client
            observer: Optional per-triple hook
            sleep: Pause function used between bulk load retries
            autoopen: Connect immediately

        Raises:
            TopologyError: If autoopen is set and segments cannot be retrieved
        """
        self.host = host
        self.port = port
        self.range = range
        self.retry = retry or RetryPolicy()
        self._owns_client = client is None
        self._transport = StoreTransport(client or httpx.Client(timeout=request_timeout))
        self._sleep = sleep
        self._resolver = SymbolResolver(self._transport, base_url(host, port))
        self._walker = DeletionWalker(self._transport, base_url(host, port), self._require_segments)
        self._segments: Optional[SegmentSet] = None
        self._item_range = ItemRange()
        self._stats = EngineStats()
        self._stats_lock = threading.Lock()
        self._open = False
        self._observer: Optional[TripleObserver] = None
        self.set_observer(observer)

        if autoopen:
            self.open(host, port)

    @classmethod
    def from_settings(cls, settings: Optional[EngineSettings] = None, **kwargs: Any) -> Engine:
        """Build an engine from EngineSettings (loaded from env if not provided)."""
        settings = settings or EngineSettings()
        return cls(
            settings.host,
            settings.port,
            settings.batch_size,
            retry=RetryPolicy.from_settings(settings),
            request_timeout=settings.request_timeout,
            **kwargs,
        )

    def __enter__(self) -> Engine:
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def segments(self) -> Optional[SegmentSet]:
        """Buffers of the open session."""
        return self._segments

    @property
    def segment_count(self) -> int:
        return len(self._segments) if self._open and self._segments else 0

    @property
    def item_range(self) -> ItemRange:
        return self._item_range

    @property
    def resolver(self) -> SymbolResolver:
        return self._resolver

    @property
    def stats(self) -> EngineStats:
        with self._stats_lock:
            return EngineStats(self._stats.applied, self._stats.skipped)

    def set_observer(self, observer: Optional[TripleObserver]) -> None:
        """Install or clear the per-triple hook.

        Raises:
            TypeError: If observer has no operate() method
        """
        if observer is not None and not isinstance(observer, TripleObserver):
            raise TypeError(f"Observer {observer!r} does not implement operate()")
        self._observer = observer

    def open(self, host: str, port: int) -> None:
        """Connect to an engine and load its segment layout.

        An already open session is flushed and closed first. Symbol caches
        are kept.

        Raises:
            TopologyError: If the segment list cannot be retrieved
        """
        if self._open:
            self.close()

        self.host = host
        self.port = port
        url = base_url(host, port)
        self._resolver.base_url = url
        self._walker.base_url = url

        addresses = self._fetch_segments(url)
        self._item_range = self._fetch_item_range(url)
        self._segments = SegmentSet(
            [
                SegmentBuffer(addr, self._transport, self.range, self.retry, sleep=self._sleep)
                for addr in addresses
            ]
        )
        with self._stats_lock:
            self._stats = EngineStats()
        self._open = True

        logger.info(
            "Connected to engine",
            extra={
                "address": f"{host}:{port}",
                "segments": len(addresses),
                "min_item": self._item_range.min_item,
                "max_item": self._item_range.max_item,
            },
        )

    def _fetch_segments(self, url: str) -> list[SegmentAddress]:
        address = f"{self.host}:{self.port}"
        try:
            response = self._transport.get(url, "/segments")
        except TransportError as e:
            raise TopologyError(f"Could not retrieve segments from server: {e}", address=address) from e

        if not response.ok:
            raise TopologyError(
                f"Could not retrieve segments from server (status {response.status})",
                address=address,
            )

        try:
            addresses = [
                SegmentAddress(int(seg.get("segment", i)), str(seg["host"]), int(seg["sport"]))
                for i, seg in enumerate(response.data.get("segments") or [])
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise TopologyError(f"Malformed segment list: {e}", address=address) from e

        if not addresses:
            raise TopologyError("Server reported no segments", address=address)
        return addresses

    def _fetch_item_range(self, url: str) -> ItemRange:
        try:
            response = self._transport.get(url, "/itemsize")
            if response.ok:
                return ItemRange(int(response.data["min"]), int(response.data["max"]))
            reason = f"status {response.status}"
        except (TransportError, KeyError, TypeError, ValueError) as e:
            reason = str(e)

        logger.warning("Item size unavailable, using full range", extra={"reason": reason})
        return ItemRange()

    def close(self) -> None:
        """Flush every segment and end the session. Symbol caches are kept."""
        if not self._open:
            return
        self.flush()
        self._open = False
        logger.info("Closed engine session", extra={"address": f"{self.host}:{self.port}"})

    def shutdown(self) -> None:
        """Close the session and release an Engine-owned HTTP client.

        The client is released even if the final flush raises. The engine
        cannot be reopened afterwards unless the client was passed in.
        """
        try:
            self.close()
        finally:
            if self._owns_client:
                self._transport.close()

    def flush(self) -> int:
        """Send all buffered operations; returns the number sent."""
        return self._require_segments().flush()

    def _require_segments(self) -> SegmentSet:
        if not self._open or self._segments is None:
            raise NotOpenError()
        return self._segments

    # Symbol lookups

    def get_subject_type(self, symbol: Symbol) -> int:
        return self._resolver.resolve_type(symbol, Role.SUBJECT)

    def get_object_type(self, symbol: Symbol) -> int:
        return self._resolver.resolve_type(symbol, Role.OBJECT)

    def get_action(self, symbol: Symbol) -> int:
        return self._resolver.resolve_action(symbol)

    def get_object(self, name: Symbol, role: Role, type_id: int) -> Any:
        return self._resolver.resolve_object(name, role, type_id)

    # Range checks

    def item_check(self, item: Any) -> bool:
        """Whether item is an integer inside the engine's item range."""
        return self._item_range.contains(item)

    def type_check(self, type_id: Any) -> bool:
        return type_check(type_id)

    def action_check(self, action: Any) -> bool:
        return action_check(action)

    # Writes

    def apply(
        self,
        stype: Symbol,
        sitem: Symbol,
        action: Symbol,
        otype: Symbol,
        oitem: Symbol,
    ) -> bool:
        """Add a triple to both its subject and object segments.

        Any field may be a name or an id. A call with an absent field is
        dropped and counted in stats.skipped.

        Returns:
            True if the triple was queued, False if it was skipped

        Raises:
            FlushTimeoutError: If a filled segment misses its flush deadline.
                The triple is already queued and counted; do not re-apply it
        """
        segments = self._require_segments()

        if stype is None or sitem is None or action is None or otype is None or oitem is None:
            with self._stats_lock:
                self._stats.skipped += 1
            return False

        st = self._resolver.resolve_type(stype, Role.SUBJECT)
        si = self._resolver.resolve_object(sitem, Role.SUBJECT, st)
        a = self._resolver.resolve_action(action)
        ot = self._resolver.resolve_type(otype, Role.OBJECT)
        oi = self._resolver.resolve_object(oitem, Role.OBJECT, ot)

        try:
            segments.add_triple(st, si, a, ot, oi)
        finally:
            # a flush timeout from add_triple still leaves both halves queued
            with self._stats_lock:
                self._stats.applied += 1

        if self._observer is not None:
            self._observer.operate(st, si, a, ot, oi)
        return True

    def delete_triple(self, st: int, si: int, ot: int, oi: int) -> None:
        """Queue removal of the subject/object pair from both segments."""
        self._require_segments().delete_triple(st, si, ot, oi)

    def delete_subject(self, type_id: int, item: int) -> int:
        """Delete every triple of a subject; returns triples deleted.

        Raises:
            StoreUnavailableError: If a query fails or the engine rejects it
        """
        self._require_segments()
        return self._walker.delete_subject(type_id, item)

    def delete_expression(self, expression: str) -> int:
        """Delete every subject matched by an expression; returns triples deleted.

        Raises:
            StoreUnavailableError: If a query fails or the engine rejects it
            InvalidExpressionError: If the expression does not select subjects
        """
        self._require_segments()
        return self._walker.delete_expression(expression)

    def build_subject(self, otype: Symbol, context: Symbol, stamp: int, stamp_bits: int) -> int:
        """Pack a context object and a stamp into one subject item id.

        The context is resolved as an object of type otype and shifted left
        by stamp_bits; the stamp fills the low bits.

        Raises:
            RangeError: If the stamp does not fit stamp_bits, or the packed
                id falls outside the engine's item range
        """
        if stamp_bits < 0:
            raise RangeError(f"Stamp width {stamp_bits} is negative", value=stamp_bits, limit=0)
        ot = self.get_object_type(otype)
        ctx = int(self.get_object(context, Role.OBJECT, ot))
        mask = (1 << stamp_bits) - 1
        if stamp < 0 or (stamp & mask) != stamp:
            raise RangeError(f"Stamp {stamp} too big for mask {mask}", value=stamp, limit=mask)

        item = (ctx << stamp_bits) | stamp
        if not self.item_check(item):
            raise RangeError(
                f"Subject {context} and {stamp} too big for itemsize {self._item_range.max_item}",
                value=item,
                limit=self._item_range.max_item,
            )
        return item

    # Whole-store operations

    def save(self) -> bool:
        """Flush, then ask the engine to serialize every segment."""
        if self._open:
            self.flush()
        return self._command("/save")

    def load(self) -> bool:
        """Ask the engine to restore every segment from its serialization."""
        return self._command("/restore")

    def empty(self) -> bool:
        """Ask the engine to discard all triples."""
        return self._command("/empty")

    def _command(self, path: str) -> bool:
        try:
            response = self._transport.get(base_url(self.host, self.port), path)
        except TransportError as e:
            logger.warning("Engine command failed", extra={"path": path, "error": str(e)})
            return False
        if not response.ok:
            logger.warning("Engine command failed", extra={"path": path, "status": response.status})
        return response.ok
