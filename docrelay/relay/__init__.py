"""Document relay: query matching, per-subscription delivery, hydration."""

from docrelay.relay.engine import RelayEngine
from docrelay.relay.hydration import HydrationCoordinator
from docrelay.relay.query import MongoQueryPredicate, QueryError

__all__ = ["HydrationCoordinator", "MongoQueryPredicate", "QueryError", "RelayEngine"]
