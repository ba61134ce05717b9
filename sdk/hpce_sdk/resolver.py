"""
Symbol resolution for the HPCE SDK.

Callers name types, actions and object instances with strings; the engine
stores only numeric ids. SymbolResolver asks the engine's conversion
service for an id the first time a name is seen and caches it for the
lifetime of the resolver.

Invariants:
    - Numeric inputs pass through unchanged
    - Absent or empty names resolve to 0, the "no id" sentinel
    - Only successful lookups are cached; a failed lookup returns 0 and is
      retried on the next call
    - Caches are never evicted and survive Engine.open()/close()

Thread safety:
    The lock is held only around cache access. Two threads missing on the
    same key may both ask the service; the answers are identical.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Hashable, Optional, Tuple, Union

from .errors import TransportError
from .terms import Role
from .transport import StoreResponse, StoreTransport

logger = logging.getLogger(__name__)

Symbol = Union[str, int, float, None]


class SymbolResolver:
    """Caching name-to-id lookups against the engine's conversion service.

    Example:
        >>> resolver = SymbolResolver(transport, "http://localhost:3000")
        >>> resolver.resolve_type("Person", Role.SUBJECT)
        1
        >>> resolver.resolve_object("Alice", Role.SUBJECT, 1)
        10
    """

    def __init__(self, transport: StoreTransport, base_url: str) -> None:
        """Initialize the resolver.

        Args:
            transport: Store transport
            base_url: URL of the engine's server instance
        """
        self._transport = transport
        self.base_url = base_url
        self._types: Dict[Role, Dict[str, int]] = {Role.SUBJECT: {}, Role.OBJECT: {}}
        self._actions: Dict[str, int] = {}
        self._objects: Dict[Tuple[str, Role, int], int] = {}
        self._lock = threading.Lock()
        self._lookups = 0

    @property
    def lookup_count(self) -> int:
        """Number of remote lookups issued so far."""
        return self._lookups

    def cache_size(self) -> int:
        with self._lock:
            return (
                len(self._types[Role.SUBJECT])
                + len(self._types[Role.OBJECT])
                + len(self._actions)
                + len(self._objects)
            )

    def resolve_type(self, name: Symbol, role: Role) -> int:
        """Resolve a subject or object type name."""
        if not name:
            return 0
        if isinstance(name, int):
            return name
        return self._cached(
            self._types[role],
            name,
            lambda: self._transport.get(
                self.base_url,
                "/convert_type",
                params={"name": name, "class": role.value},
            ),
        )

    def resolve_action(self, name: Symbol) -> int:
        """Resolve an action name."""
        if not name:
            return 0
        if isinstance(name, int):
            return name
        return self._cached(
            self._actions,
            name,
            lambda: self._transport.get(self.base_url, "/convert_action", params={"name": name}),
        )

    def resolve_object(self, name: Symbol, role: Role, type_id: int) -> Union[int, float]:
        """Resolve an object instance name under a type.

        The same name may resolve to different items under different types,
        so the cache is keyed by (name, role, type).
        """
        if name is None or name == "":
            return 0
        if isinstance(name, (int, float)):
            return name
        return self._cached(
            self._objects,
            (name, role, type_id),
            lambda: self._transport.get(
                self.base_url,
                "/convert_object",
                params={"class": role.value, "name": name, "type": type_id},
            ),
        )

    def _cached(
        self,
        cache: Dict[Any, int],
        key: Hashable,
        lookup: Callable[[], StoreResponse],
    ) -> int:
        with self._lock:
            hit = cache.get(key)
        if hit is not None:
            return hit

        value = self._remote(key, lookup)
        if value is None:
            return 0

        with self._lock:
            cache[key] = value
        return value

    def _remote(self, key: Hashable, lookup: Callable[[], StoreResponse]) -> Optional[int]:
        with self._lock:
            self._lookups += 1
        try:
            response = lookup()
        except TransportError as e:
            logger.warning("Symbol lookup failed", extra={"symbol": repr(key), "error": str(e)})
            return None

        if not response.ok:
            logger.warning(
                "Symbol could not be converted",
                extra={"symbol": repr(key), "status": response.status},
            )
            return None

        try:
            value = int(response.data["id"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Symbol lookup returned no id", extra={"symbol": repr(key)})
            return None

        logger.debug("Resolved symbol", extra={"symbol": repr(key), "id": value})
        return value
