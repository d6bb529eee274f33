"""Toast channel: short-lived on-screen message."""
import logging
from typing import Any, Dict, Optional, Protocol

from crm_reminders.channels.base import NotificationChannel, maybe_await
from crm_reminders.engine.types import ReminderMessage

logger = logging.getLogger(__name__)

DEFAULT_TOAST_DURATION_MS = 15000


class ToastPresenter(Protocol):
    def show(self, message: str, duration_ms: int) -> Any:
        ...


class LoggingToastPresenter:
    """Writes toasts to the log; used by the headless worker."""

    def show(self, message: str, duration_ms: int):
        logger.info(f"[TOAST {duration_ms}ms] {message}")


class ToastChannel(NotificationChannel):
    """Shows the reminder as a toast."""

    name = "toast"

    def __init__(self, presenter: Optional[ToastPresenter] = None,
                 duration_ms: int = DEFAULT_TOAST_DURATION_MS, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.presenter = presenter or LoggingToastPresenter()
        self.duration_ms = duration_ms

    async def send(self, message: ReminderMessage) -> bool:
        await maybe_await(self.presenter.show(message.toast_text, self.duration_ms))
        return True
