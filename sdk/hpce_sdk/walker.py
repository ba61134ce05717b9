"""
Deletion by query for the HPCE SDK.

The engine cannot delete everything attached to a subject in one call, so
the walker asks which receivers still match, queues a delete pair for each
through the normal segment buffers, flushes, and asks again. Deleting
changes what the next query returns, so this is a convergence loop rather
than offset pagination: it ends on the first query that matches nothing.

Invariants:
    - Every round is flushed before the next query is issued
    - A failed query or a non-zero status raises immediately; it is never retried,
      so "store gone" is never confused with "no more matches"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from .errors import InvalidExpressionError, StoreUnavailableError, TransportError
from .segment import SegmentSet
from .transport import StoreTransport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Receiver:
    """One match returned by a receivers query."""

    kind: str
    type_id: int
    item: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Receiver:
        return cls(
            kind=str(data.get("class", "")),
            type_id=int(data["type"]),
            item=int(data["item"]),
        )


class DeletionWalker:
    """Removes triples by repeatedly querying and deleting until nothing matches.

    Example:
        >>> walker = DeletionWalker(transport, "http://localhost:3000", lambda: engine.segments)
        >>> walker.delete_subject(1, 10)
        2
    """

    def __init__(
        self,
        transport: StoreTransport,
        base_url: str,
        segments: Callable[[], SegmentSet],
    ) -> None:
        """Initialize the walker.

        Args:
            transport: Store transport
            base_url: URL of the engine's server instance
            segments: Returns the buffers of the current session
        """
        self._transport = transport
        self.base_url = base_url
        self._segments = segments

    def delete_expression(self, expression: str) -> int:
        """Delete every subject matched by an engine expression.

        Each matched subject is removed with delete_subject(), regardless
        of its type or the actions attached to it.

        Returns:
            Number of triples deleted

        Raises:
            StoreUnavailableError: If a query fails or reports a non-zero status
            InvalidExpressionError: If the expression matches non-subjects
        """
        deleted = 0
        rounds = 0
        while True:
            receivers = self._query(expression, {"stype": "all", "action": "all"})
            if not receivers:
                break
            if receivers[0].kind != "subject":
                raise InvalidExpressionError(expression, receivers[0].kind)

            rounds += 1
            logger.debug(
                "Deleting expression subjects",
                extra={"round": rounds, "subjects": len(receivers)},
            )
            for subject in receivers:
                deleted += self.delete_subject(subject.type_id, subject.item)
        return deleted

    def delete_subject(self, type_id: int, item: int) -> int:
        """Delete every triple whose subject is (type_id, item).

        Returns:
            Number of triples deleted
        """
        deleted = 0
        while True:
            objects = self._query(
                f"subject({type_id},{item})", {"otype": "all", "action": "all"}
            )
            if not objects:
                break

            segments = self._segments()
            for obj in objects:
                segments.delete_triple(type_id, item, obj.type_id, obj.item)
            segments.flush()
            deleted += len(objects)
        logger.debug(
            "Deleted subject",
            extra={"type_id": type_id, "item": item, "triples": deleted},
        )
        return deleted

    def _query(self, body: str, params: Dict[str, str]) -> List[Receiver]:
        try:
            response = self._transport.post(self.base_url, "/expr_receivers", body, params=params)
        except TransportError as e:
            raise StoreUnavailableError(f"Receivers query failed: {e}") from e
        if not response.ok:
            raise StoreUnavailableError(
                f"Receivers query failed with status {response.status}",
                status=response.status,
            )
        return [Receiver.from_dict(r) for r in response.data.get("receivers") or []]
