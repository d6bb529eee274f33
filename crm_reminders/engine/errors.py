"""Exceptions raised inside the reminder engine."""


class ReminderEngineError(Exception):
    """Base class for reminder engine errors."""


class RepositoryError(ReminderEngineError):
    """The event repository could not be reached or rejected a request."""


class MalformedEventError(ReminderEngineError):
    """An event payload could not be coerced into a ScheduledEvent."""

    def __init__(self, message: str, payload=None):
        super().__init__(message)
        self.payload = payload


class ChannelError(ReminderEngineError):
    """A presentation channel failed to deliver a notification."""
