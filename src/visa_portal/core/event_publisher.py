"""Event publisher for case-level refresh signals."""

from typing import Awaitable, Callable, Dict, List

import structlog

from visa_portal.models.results import MutationResult, RequiresRefetch

logger = structlog.get_logger(__name__)

RefreshHandler = Callable[[str, MutationResult], Awaitable[None]]


class CaseEventPublisher:
    """Delivers sub-workflow mutation results to the case aggregate.

    Handlers are registered per application id. A sub-workflow publishes
    either a ``Patch`` carrying the updated entity or ``RequiresRefetch``.
    """

    def __init__(self):
        self._handlers: Dict[str, List[RefreshHandler]] = {}

    def subscribe(self, application_id: str, handler: RefreshHandler) -> None:
        self._handlers.setdefault(str(application_id), []).append(handler)

    def unsubscribe(self, application_id: str, handler: RefreshHandler) -> None:
        handlers = self._handlers.get(str(application_id), [])
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            self._handlers.pop(str(application_id), None)

    def subscriber_count(self, application_id: str) -> int:
        return len(self._handlers.get(str(application_id), []))

    async def publish(self, application_id: str, result: MutationResult) -> bool:
        """Publish a mutation result.

        Args:
            application_id: Application whose view must be updated
            result: Patch or RequiresRefetch

        Returns:
            True if every handler completed
        """
        handlers = list(self._handlers.get(str(application_id), []))
        if not handlers:
            logger.debug(
                "No subscribers for case refresh",
                application_id=str(application_id),
                result=type(result).__name__
            )
            return True

        success = True
        for handler in handlers:
            try:
                await handler(str(application_id), result)
            except Exception as e:
                success = False
                logger.error(
                    "Case refresh handler failed",
                    application_id=str(application_id),
                    result=type(result).__name__,
                    error=str(e),
                    error_type=type(e).__name__
                )

        if success:
            logger.debug(
                "Case refresh published",
                application_id=str(application_id),
                result=type(result).__name__
            )
        return success

    async def publish_refetch(self, application_id: str, reason: str) -> bool:
        """Shorthand for publishing ``RequiresRefetch``."""
        return await self.publish(application_id, RequiresRefetch(reason=reason))
