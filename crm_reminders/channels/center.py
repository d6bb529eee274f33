"""In-app notification center channel."""
import asyncio
import logging
from typing import Any, Dict, Optional

from crm_reminders.channels.base import NotificationChannel
from crm_reminders.engine.errors import ChannelError
from crm_reminders.engine.types import ReminderMessage
from crm_reminders.services.notification_center import NotificationCenter, build_record

logger = logging.getLogger(__name__)


class NotificationCenterChannel(NotificationChannel):
    """Records the reminder in the user's notification center."""

    name = "center"

    def __init__(self, center: NotificationCenter, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.center = center

    async def send(self, message: ReminderMessage) -> bool:
        if not message.owner_id:
            raise ChannelError(f"Reminder {message.event_id} has no owner to notify")

        entry = build_record(
            user_id=message.owner_id,
            title=message.title,
            message=message.body,
            notification_type=message.notification_type,
            priority=message.priority,
            event_id=message.event_id,
            metadata=message.metadata,
        )
        # Stores may block on the database
        await asyncio.to_thread(self.center.record, entry)
        return True
