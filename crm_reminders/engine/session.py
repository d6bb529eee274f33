"""Authentication session collaborator for the reminder scheduler."""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionContext:
    """Who is logged in right now."""
    is_authenticated: bool = False
    current_user_id: Optional[str] = None
    access_token: Optional[str] = None

    @classmethod
    def anonymous(cls) -> "SessionContext":
        return cls()


SessionListener = Callable[[SessionContext], None]


class SessionState:
    """Observable login state; listeners are called on every login and logout."""

    def __init__(self, context: Optional[SessionContext] = None):
        self._context = context or SessionContext.anonymous()
        self._listeners: List[SessionListener] = []

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def is_authenticated(self) -> bool:
        return self._context.is_authenticated and self._context.current_user_id is not None

    @property
    def current_user_id(self) -> Optional[str]:
        return self._context.current_user_id if self.is_authenticated else None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self):
        for listener in list(self._listeners):
            try:
                listener(self._context)
            except Exception as e:
                logger.error(f"Session listener failed: {str(e)}")

    def login(self, user_id: str, access_token: Optional[str] = None):
        self._context = SessionContext(is_authenticated=True, current_user_id=str(user_id),
                                       access_token=access_token)
        logger.info(f"Session started for user {user_id}")
        self._publish()

    def logout(self):
        user_id = self._context.current_user_id
        self._context = SessionContext.anonymous()
        logger.info(f"Session ended for user {user_id}")
        self._publish()
