"""Query predicates - does document D satisfy subscription query Q.

The default predicate evaluates MongoDB-style filters with ``mongoquery``
(``{"status": "open"}``, ``{"id": {"$gt": 1}}``, ...). A missing or empty
query matches every document.
"""

from typing import Any, Dict, Mapping, Optional

from mongoquery import Query, QueryError

__all__ = ["MongoQueryPredicate", "QueryError"]


class MongoQueryPredicate:
    """QueryPredicateProtocol implementation backed by mongoquery.

    Raises ``QueryError`` for malformed queries; callers decide how to
    isolate that failure.
    """

    def matches(self, document: Mapping[str, Any], query: Optional[Dict[str, Any]]) -> bool:
        if not query:
            return True
        return bool(Query(query).match(document))
