"""Schema and subscription registries."""

from docrelay.registry.schemas import SchemaRegistry
from docrelay.registry.subscriptions import NeverExpire, SubscriptionRegistry, TTLExpiry

__all__ = ["NeverExpire", "SchemaRegistry", "SubscriptionRegistry", "TTLExpiry"]
