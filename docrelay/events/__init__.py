"""In-process event dispatch for commands and subscription changes."""

from docrelay.events.bus import EVENT_COMMAND, EVENT_SUBSCRIPTION, CommandBus, Listener

__all__ = ["EVENT_COMMAND", "EVENT_SUBSCRIPTION", "CommandBus", "Listener"]
