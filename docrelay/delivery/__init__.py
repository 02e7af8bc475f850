"""Outbound delivery of document batches to webhooks."""

from docrelay.delivery.channel import DeliveryResult, DeliveryStatus, HttpDeliveryChannel, JSON_HEADERS

__all__ = ["DeliveryResult", "DeliveryStatus", "HttpDeliveryChannel", "JSON_HEADERS"]
