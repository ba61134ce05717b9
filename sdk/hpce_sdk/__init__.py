"""
HPCE Python SDK - Bulk loading client for the sharded correlation engine.

This SDK lets application code record and delete subject-action-object
triples without knowing how items map to segments:
- SymbolResolver turns names into the engine's numeric ids
- SegmentBuffer batches operations per segment and bulk-loads them
- DeletionWalker removes everything reachable from a subject or expression
- Engine ties them together

Example:
    >>> from hpce_sdk import Engine
    >>>
    >>> with Engine("localhost", 3000) as engine:
    ...     engine.apply("Person", "Alice", "likes", "Movie", "Matrix")
    ...     engine.save()

Invariants:
    - Each triple is written twice, once per owning segment
    - Item placement is item mod segment count
    - Bulk loads retry until the segment accepts them

Version: 1.0.0
"""

__version__ = "1.0.0"

from .client import Engine, EngineStats, ProgressObserver, TripleObserver
from .config import EngineSettings, setup_logging
from .errors import (
    FlushTimeoutError,
    HpceError,
    InvalidExpressionError,
    NotOpenError,
    RangeError,
    StoreUnavailableError,
    TopologyError,
    TransportError,
)
from .resolver import SymbolResolver
from .router import segment_for
from .segment import BufferState, RetryPolicy, SegmentAddress, SegmentBuffer, SegmentSet
from .terms import ItemRange, OpKind, Role, TripleOp, no_spaces, prologify
from .transport import StoreResponse, StoreTransport
from .walker import DeletionWalker, Receiver

__all__ = [
    # Version
    "__version__",
    # Client
    "Engine",
    "EngineStats",
    "TripleObserver",
    "ProgressObserver",
    # Configuration
    "EngineSettings",
    "setup_logging",
    # Components
    "SymbolResolver",
    "segment_for",
    "SegmentBuffer",
    "SegmentSet",
    "SegmentAddress",
    "BufferState",
    "RetryPolicy",
    "DeletionWalker",
    "Receiver",
    "StoreTransport",
    "StoreResponse",
    # Terms
    "TripleOp",
    "OpKind",
    "Role",
    "ItemRange",
    "prologify",
    "no_spaces",
    # Errors
    "HpceError",
    "TransportError",
    "TopologyError",
    "NotOpenError",
    "StoreUnavailableError",
    "InvalidExpressionError",
    "RangeError",
    "FlushTimeoutError",
]
