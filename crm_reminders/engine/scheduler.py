"""
Reminder Scheduler.

Polls the event repository on a fixed cadence while a user is logged in,
evaluates which reminders are due and hands them to the dispatcher.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from crm_reminders.channels.base import NotificationChannel
from crm_reminders.config import ReminderSettings, settings as default_settings
from crm_reminders.engine.dispatcher import NotificationDispatcher
from crm_reminders.engine.evaluator import due_events
from crm_reminders.engine.session import SessionContext, SessionState
from crm_reminders.engine.types import DispatchedNotification, ScheduledEvent
from crm_reminders.repository.base import EventRepository
from crm_reminders.utils.israel_time import utc_now
from crm_reminders.utils.logger import scheduler_logger
from crm_reminders.utils.metrics import MetricsCollector, metrics_collector

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class ReminderScheduler:
    """
    Session-bound polling loop.

    One session at a time: ``start`` opens a fresh dispatcher (and with it a
    fresh dedup set), ``stop`` cancels the timer and closes the dispatcher. A
    tick still running after ``stop`` finds its generation outdated and leaves
    shared state alone.
    """

    def __init__(
        self,
        repository: EventRepository,
        channels: Iterable[NotificationChannel] = (),
        settings: Optional[ReminderSettings] = None,
        session_state: Optional[SessionState] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], datetime] = utc_now,
        poll_interval: Optional[float] = None,
        dispatcher_factory: Optional[Callable[[], NotificationDispatcher]] = None,
    ):
        self.repository = repository
        self.channels = list(channels)
        self.settings = settings or default_settings
        self.session_state = session_state
        self.metrics = metrics or metrics_collector
        self.clock = clock
        self.poll_interval = poll_interval if poll_interval is not None else self.settings.poll_interval_seconds
        self._dispatcher_factory = dispatcher_factory or self._default_dispatcher

        self.state = SchedulerState.STOPPED
        self._context: Optional[SessionContext] = None
        self._dispatcher: Optional[NotificationDispatcher] = None
        self._snapshot: List[ScheduledEvent] = []
        self._generation = 0
        self._tick_in_flight = False
        self._timer_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._start_task: Optional[asyncio.Task] = None

    def _default_dispatcher(self) -> NotificationDispatcher:
        return NotificationDispatcher(self.channels, self.repository, metrics=self.metrics, clock=self.clock)

    @property
    def is_running(self) -> bool:
        return self.state == SchedulerState.RUNNING

    @property
    def dispatcher(self) -> Optional[NotificationDispatcher]:
        return self._dispatcher

    @property
    def snapshot(self) -> Tuple[ScheduledEvent, ...]:
        """Events fetched by the last completed tick."""
        return tuple(self._snapshot)

    @property
    def current_user_id(self) -> Optional[str]:
        return self._context.current_user_id if self._context else None

    async def start(self, context: SessionContext) -> bool:
        """
        Start polling for ``context``'s user.

        Does nothing unless the context is authenticated. Starting for another
        user restarts the scheduler with an empty dedup set.

        Returns:
            True if the scheduler is running for the context's user
        """
        if not context.is_authenticated or not context.current_user_id:
            logger.info("Session is not authenticated, scheduler stays stopped")
            return False

        if self.is_running:
            if self.current_user_id == context.current_user_id:
                return True
            self.stop()

        self._generation += 1
        generation = self._generation
        self._context = context
        self._dispatcher = self._dispatcher_factory()
        self._snapshot = []
        self._tick_in_flight = False
        self.state = SchedulerState.RUNNING
        scheduler_logger.info("Scheduler started", user_id=context.current_user_id,
                              interval_seconds=self.poll_interval)

        for channel in self.channels:
            try:
                await channel.initialize()
            except Exception as e:
                logger.error(f"Failed to initialize channel '{channel.name}': {str(e)}")

        await self.run_tick()

        if self.is_running and generation == self._generation:
            self._timer_task = asyncio.create_task(self._timer_loop(generation))
        return self.is_running

    def stop(self):
        """Cancel the timer and drop session state. Safe to call when stopped."""
        if self.state == SchedulerState.STOPPED:
            return

        user_id = self.current_user_id
        self.state = SchedulerState.STOPPED
        self._generation += 1

        if self._timer_task is not None and not self._timer_task.done():
            self._timer_task.cancel()
        self._timer_task = None

        if self._dispatcher is not None:
            self._dispatcher.close()
        self._dispatcher = None
        self._context = None
        self._snapshot = []
        self._tick_in_flight = False

        for channel in self.channels:
            try:
                channel.reset()
            except Exception as e:
                logger.error(f"Failed to reset channel '{channel.name}': {str(e)}")

        scheduler_logger.info("Scheduler stopped", user_id=user_id)

    def handle_session_change(self, context: SessionContext):
        """Session listener: restart on login or user switch, stop on logout."""
        if not context.is_authenticated or not context.current_user_id:
            self.stop()
            return
        if self.is_running and self.current_user_id == context.current_user_id:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, cannot start scheduler for new session")
            return
        self.stop()
        self._start_task = loop.create_task(self.start(context))

    async def wait_for_start(self):
        """Wait for a start triggered by ``handle_session_change`` to finish."""
        if self._start_task is not None:
            await self._start_task

    async def _timer_loop(self, generation: int):
        while self.is_running and generation == self._generation:
            await asyncio.sleep(self.poll_interval)
            if not self.is_running or generation != self._generation:
                break
            if self._tick_in_flight:
                self.metrics.tick_skipped()
                logger.debug("Previous tick still running, skipping this one")
                continue
            self._tick_task = asyncio.create_task(self._guarded_tick())

    async def _guarded_tick(self):
        try:
            await self.run_tick()
        except Exception as e:
            scheduler_logger.exception("Unexpected error during reminder tick", error=str(e))

    def _session_is_current(self, context: SessionContext) -> bool:
        if self.session_state is None:
            return True
        return (self.session_state.is_authenticated
                and self.session_state.current_user_id == context.current_user_id)

    async def run_tick(self) -> List[DispatchedNotification]:
        """
        Run one evaluation pass now.

        Skipped (returns []) when stopped or while another tick is in flight.
        """
        if not self.is_running:
            return []
        if self._tick_in_flight:
            self.metrics.tick_skipped()
            return []

        generation = self._generation
        self._tick_in_flight = True
        try:
            return await self._tick(generation, self._context, self._dispatcher)
        finally:
            if generation == self._generation:
                self._tick_in_flight = False

    async def _tick(self, generation: int, context: SessionContext,
                    dispatcher: NotificationDispatcher) -> List[DispatchedNotification]:
        self.metrics.tick()

        if not self._session_is_current(context):
            logger.info("Session is no longer authenticated, stopping scheduler")
            self.stop()
            return []

        try:
            with self.metrics.time_operation("fetch_seconds"):
                events = await self.repository.list_events(context.current_user_id)
        except Exception as e:
            self.metrics.fetch_failed()
            scheduler_logger.error("Failed to fetch events, will retry next tick", error=str(e))
            return []

        if generation != self._generation:
            return []

        user_id = context.current_user_id
        events = [event for event in events if event.owner_id is None or event.owner_id == user_id]
        self._snapshot = events

        now = self.clock()
        fired: List[DispatchedNotification] = []
        for event in due_events(now, events, self.settings.late_tolerance):
            if generation != self._generation:
                break
            try:
                result = await dispatcher.dispatch(event)
            except Exception as e:
                logger.error(f"Error dispatching event {event.id}: {str(e)}")
                continue
            if result is not None:
                fired.append(result)

        if fired:
            scheduler_logger.info("Reminder tick finished", user_id=user_id,
                                  checked=len(events), fired=len(fired))
        return fired


def bind_scheduler(scheduler: ReminderScheduler, session_state: SessionState) -> Callable[[], None]:
    """
    Drive ``scheduler`` from ``session_state``.

    Login or a user switch (re)starts it, logout stops it. If a user is already
    logged in the scheduler starts right away. Returns the unsubscribe function.
    """
    scheduler.session_state = session_state
    unsubscribe = session_state.subscribe(scheduler.handle_session_change)
    if session_state.is_authenticated:
        scheduler.handle_session_change(session_state.context)
    return unsubscribe
