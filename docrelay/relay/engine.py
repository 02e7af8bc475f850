"""Relay Engine - forwards newly arrived documents to matching subscriptions.

Algorithm, applied independently per subscription:
1. Evaluate the subscription's query against each document.
2. Keep the ordered subsequence of documents that match.
3. If that subsequence is non-empty, hand it to the delivery channel as a
   single batch addressed to the subscription's webhook.

Subscriptions with nothing to receive generate no delivery call. A query
that fails to evaluate is logged and treated as matching nothing; other
subscriptions are unaffected.
"""

from typing import Any, List, Optional, Sequence

from docrelay.logging import get_component_logger
from docrelay.protocols import (
    DeliveryChannelProtocol,
    Document,
    LoggerProtocol,
    QueryPredicateProtocol,
    SubscribeCommand,
)
from docrelay.registry import SubscriptionRegistry
from docrelay.relay.query import MongoQueryPredicate


class RelayEngine:
    """Matches document batches against subscriptions and delivers them."""

    def __init__(
        self,
        subscriptions: SubscriptionRegistry,
        channel: DeliveryChannelProtocol,
        predicate: Optional[QueryPredicateProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        """Initialize engine.

        Args:
            subscriptions: Registry read on every relay
            channel: Outbound transport (fire-and-forget)
            predicate: Query evaluator, defaults to MongoQueryPredicate
            logger: Optional logger
        """
        self._subscriptions = subscriptions
        self._channel = channel
        self._predicate = predicate or MongoQueryPredicate()
        self._logger = get_component_logger("RelayEngine", logger)

    def relay_to_all_subscriptions(self, documents: Sequence[Document], schema_type: str) -> int:
        """Relay a batch to every subscription of ``schema_type``.

        Returns:
            Number of subscriptions that received a delivery
        """
        delivered = 0
        for subscription in self._subscriptions.for_schema_type(schema_type):
            if self.relay_to_subscription(documents, subscription) is not None:
                delivered += 1
        return delivered

    def relay_to_subscription(
        self,
        documents: Sequence[Document],
        subscription: SubscribeCommand,
    ) -> Optional[List[Document]]:
        """Relay the matching subset of ``documents`` to one subscription.

        Returns:
            The delivered batch, or None when nothing was sent
        """
        matching = self.filter_documents(documents, subscription)
        if not matching:
            return None

        self._logger.debug(
            "relay_delivering",
            webhook=subscription.webhook,
            schema_type=subscription.target_schema_type,
            matched=len(matching),
            total=len(documents),
        )
        self._deliver(subscription.webhook, matching)
        return matching

    def filter_documents(
        self,
        documents: Sequence[Document],
        subscription: SubscribeCommand,
    ) -> List[Document]:
        """Ordered subsequence of ``documents`` satisfying the subscription query."""
        query = subscription.query
        try:
            return [doc for doc in documents if self._predicate.matches(doc, query)]
        except Exception as e:
            self._logger.error(
                "relay_query_error",
                webhook=subscription.webhook,
                query=query,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

    def _deliver(self, url: str, payload: Any) -> None:
        try:
            self._channel.deliver(url, payload)
        except Exception as e:
            # Channels must not raise into dispatch
            self._logger.error(
                "relay_delivery_error",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
