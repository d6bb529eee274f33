"""
Reminder worker.

Runs the reminder scheduler headless against the REST event store, for the
user the REMINDER_ACCESS_TOKEN belongs to. Toasts and OS notifications go to
the log; notification-center entries are posted back to the API so the user
sees them in /notifications.
"""

import asyncio
import logging
import os

from fastapi import HTTPException

from crm_reminders.channels.center import NotificationCenterChannel
from crm_reminders.channels.system import SystemNotificationChannel
from crm_reminders.channels.toast import ToastChannel
from crm_reminders.config import settings
from crm_reminders.engine.scheduler import ReminderScheduler, bind_scheduler
from crm_reminders.engine.session import SessionState
from crm_reminders.middleware.auth import decode_access_token
from crm_reminders.repository.http import HttpEventRepository
from crm_reminders.services.notification_center import HttpNotificationCenter
from crm_reminders.utils.metrics import metrics_collector

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main():
    """Main entry point for the reminder worker."""
    token = os.getenv("REMINDER_ACCESS_TOKEN")
    if not token:
        logger.error("REMINDER_ACCESS_TOKEN is not set, nothing to poll for")
        return

    try:
        user = decode_access_token(token)
    except HTTPException as e:
        logger.error(f"REMINDER_ACCESS_TOKEN rejected: {e.detail}")
        return

    logger.info(f"Starting reminder worker for user {user.user_id} against {settings.api_base_url}")

    repository = HttpEventRepository(settings.api_base_url, token, user.user_id, metrics=metrics_collector)
    center = HttpNotificationCenter(settings.api_base_url, token)
    channels = [
        ToastChannel(duration_ms=settings.toast_duration_ms),
        SystemNotificationChannel(),
        NotificationCenterChannel(center),
    ]
    session_state = SessionState()
    scheduler = ReminderScheduler(repository, channels, settings=settings, metrics=metrics_collector)
    unsubscribe = bind_scheduler(scheduler, session_state)

    try:
        session_state.login(user.user_id, token)
        await scheduler.wait_for_start()
        await asyncio.Event().wait()
    finally:
        session_state.logout()
        unsubscribe()
        await repository.aclose()
        center.close()
        logger.info(f"Reminder worker stopped: {metrics_collector.get_metrics()['counters']}")


def run():
    """Console entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
