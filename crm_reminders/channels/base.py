"""
Base Notification Channel.

Abstract base class for the presentation channels a reminder fans out to.
"""

import abc
import inspect
import logging
from typing import Any, Dict, Optional

from crm_reminders.engine.types import ReminderMessage

logger = logging.getLogger(__name__)


async def maybe_await(result: Any) -> Any:
    """Await ``result`` if a presenter handed back a coroutine."""
    if inspect.isawaitable(result):
        return await result
    return result


class NotificationChannel(abc.ABC):
    """Abstract base class for notification channels."""

    name = "channel"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize notification channel.

        Args:
            config: Configuration for the channel
        """
        self.config = config or {}
        self.is_initialized = False

    @abc.abstractmethod
    async def send(self, message: ReminderMessage) -> bool:
        """
        Deliver a reminder.

        Args:
            message: Rendered reminder

        Returns:
            True if delivered, False if the channel chose to skip it
            (e.g. permission not granted)

        Raises:
            Exception: any delivery failure; the dispatcher logs it and moves on
        """

    async def initialize(self):
        """Prepare the channel for a new session."""
        self.is_initialized = True
        logger.info(f"{self.__class__.__name__} initialized")

    def reset(self):
        """Drop per-session state when the session ends."""
        self.is_initialized = False
        logger.info(f"{self.__class__.__name__} reset")
