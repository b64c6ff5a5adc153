"""Client-side in-flight flags keyed by (operation, entity id)."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Set, Tuple

import structlog

from .error_handling import OperationInProgress

logger = structlog.get_logger(__name__)


class InFlightRegistry:
    """Tracks which operations are currently dispatched for which entities.

    Operations sharing a ``group`` are mutually exclusive on the same entity
    (verify and reject on one document, for example). This is not a lock on
    the remote service; the event loop is single-threaded so the check and
    the mark happen without suspension in between.
    """

    def __init__(self):
        self._active: Set[Tuple[str, str]] = set()

    def is_in_flight(self, operation: str, entity_id: str) -> bool:
        return (operation, str(entity_id)) in self._active

    def is_busy(self, entity_id: str) -> bool:
        """Whether any operation is in flight for the entity."""
        entity_id = str(entity_id)
        return any(key[1] == entity_id for key in self._active)

    @property
    def active(self) -> Set[Tuple[str, str]]:
        return set(self._active)

    @asynccontextmanager
    async def guard(
        self,
        operation: str,
        entity_id: str,
        group: Optional[str] = None
    ) -> AsyncIterator[None]:
        """Mark ``(group or operation, entity_id)`` in flight for the duration.

        Raises:
            OperationInProgress: If the same key is already in flight
        """
        key = (group or operation, str(entity_id))
        if key in self._active:
            logger.info(
                "Duplicate dispatch refused",
                operation=operation,
                entity_id=str(entity_id)
            )
            raise OperationInProgress(operation, str(entity_id))

        self._active.add(key)
        try:
            yield
        finally:
            self._active.discard(key)
