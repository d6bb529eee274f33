"""CRM reminder scheduling engine and event store."""

__version__ = "1.0.0"
