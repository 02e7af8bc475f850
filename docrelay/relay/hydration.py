"""Hydration Coordinator - one-time snapshot for a new subscriber.

Runs after the subscription registry has already stored the subscription.
The snapshot goes only to that subscription's webhook, filtered with the
same query logic as a live relay. A failing or empty snapshot never
unwinds the subscription.
"""

import inspect
from typing import List, Optional

from docrelay.logging import get_component_logger
from docrelay.protocols import Document, HydrateFn, LoggerProtocol, SubscribeCommand
from docrelay.relay.engine import RelayEngine


class HydrationCoordinator:
    """Produces and relays hydration snapshots."""

    def __init__(self, relay: RelayEngine, logger: Optional[LoggerProtocol] = None) -> None:
        self._relay = relay
        self._logger = get_component_logger("HydrationCoordinator", logger)

    async def hydrate(
        self,
        subscription: SubscribeCommand,
        hydrate_fn: HydrateFn,
    ) -> Optional[List[Document]]:
        """Invoke ``hydrate_fn`` and relay its result to ``subscription``.

        Args:
            subscription: The subscription that was just registered
            hydrate_fn: Snapshot producer, sync or async

        Returns:
            The delivered batch, or None if nothing was sent
        """
        try:
            result = hydrate_fn(subscription)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            self._logger.error(
                "hydration_failed",
                webhook=subscription.webhook,
                schema_type=subscription.target_schema_type,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        documents = list(result or [])
        if not documents:
            self._logger.info(
                "hydration_empty",
                webhook=subscription.webhook,
                schema_type=subscription.target_schema_type,
            )
            return None

        delivered = self._relay.relay_to_subscription(documents, subscription)
        self._logger.info(
            "hydration_relayed",
            webhook=subscription.webhook,
            schema_type=subscription.target_schema_type,
            snapshot=len(documents),
            delivered=len(delivered) if delivered else 0,
        )
        return delivered
