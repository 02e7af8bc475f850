"""HTTP gateway for docrelay actors."""

from docrelay.gateway.app import create_app, create_app_from_settings

__all__ = ["create_app", "create_app_from_settings"]
