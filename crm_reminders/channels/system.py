"""OS-level notification channel, gated by the user's permission."""
import logging
from enum import Enum
from typing import Any, Dict, Optional

from crm_reminders.channels.base import NotificationChannel, maybe_await
from crm_reminders.engine.types import ReminderMessage

logger = logging.getLogger(__name__)


class PermissionState(str, Enum):
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


class SystemNotifier:
    """
    Host integration for OS notifications.

    Subclasses override ``show`` and, when the platform asks the user,
    ``request_permission``. ``supported=False`` models a platform without the API.
    """

    def __init__(self, permission: PermissionState = PermissionState.DEFAULT, supported: bool = True):
        self.permission = PermissionState(permission)
        self.supported = supported

    async def request_permission(self) -> PermissionState:
        return self.permission

    def show(self, title: str, body: str) -> Any:
        raise NotImplementedError


class LoggingSystemNotifier(SystemNotifier):
    """Logs OS notifications; permission is granted up front."""

    def __init__(self):
        super().__init__(permission=PermissionState.GRANTED)

    def show(self, title: str, body: str):
        logger.info(f"[SYSTEM NOTIFICATION] {title}: {body}")


class SystemNotificationChannel(NotificationChannel):
    """
    Shows the reminder through the OS notification API.

    Permission is requested at most once per session, and only while it is
    still ``default``. Denied or unsupported means the channel skips quietly.
    """

    name = "system"

    def __init__(self, notifier: Optional[SystemNotifier] = None, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.notifier = notifier or LoggingSystemNotifier()
        self.permission_requested = False

    async def _ensure_permission(self) -> PermissionState:
        if self.notifier.permission == PermissionState.DEFAULT and not self.permission_requested:
            self.permission_requested = True
            try:
                granted = await self.notifier.request_permission()
                self.notifier.permission = PermissionState(granted)
            except Exception as e:
                logger.error(f"Error requesting notification permission: {str(e)}")
        return self.notifier.permission

    async def send(self, message: ReminderMessage) -> bool:
        if not self.notifier.supported:
            logger.debug("OS notifications not supported, skipping")
            return False

        permission = await self._ensure_permission()
        if permission != PermissionState.GRANTED:
            logger.debug(f"OS notification permission is {permission.value}, skipping")
            return False

        await maybe_await(self.notifier.show(message.title, message.body))
        return True

    def reset(self):
        self.permission_requested = False
        super().reset()
