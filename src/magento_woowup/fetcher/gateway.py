"""RPC gateway owning the source session and the retry wrapper."""

import time
from typing import Any, Callable, Optional, Protocol

from magento_woowup.exceptions import SessionExpiredFault
from magento_woowup.fetcher.retry_handler import RetryHandler
from magento_woowup.fetcher.transport import RpcTransport
from magento_woowup.models.data_models import RetryPolicy, Session, SessionState


class Clock(Protocol):
    """Clock interface for testable time management."""

    def now(self) -> float:
        """Return current time in seconds."""
        ...


class MonotonicClock:
    """Default clock implementation using time.monotonic."""

    def now(self) -> float:
        """Return current monotonic time in seconds."""
        return time.monotonic()


class RpcGateway:
    """
    Session-aware entry point for every remote call.

    State machine: UNCONNECTED -> CONNECTED -> EXPIRED -> CONNECTED ...
    - A session expires once the idle timeout has elapsed since the last
      (re)connect
    - Every call checks expiry before dispatch and reconnects synchronously
    - Login and calls both go through the same RetryHandler
    """

    def __init__(
        self,
        transport: RpcTransport,
        username: str,
        api_key: str,
        policy: Optional[RetryPolicy] = None,
        idle_timeout: float = 300.0,
        clock: Optional[Clock] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger=None
    ):
        """
        Initialize gateway.

        Args:
            transport: RPC transport to the source system
            username: API user passed to login
            api_key: API key passed to login
            policy: Retry policy for login and calls
            idle_timeout: Seconds after which the session is renewed
            clock: Clock interface (defaults to MonotonicClock)
            sleep: Sleep function used between retries
            logger: Optional structured logger
        """
        self.transport = transport
        self.username = username
        self.api_key = api_key
        self.idle_timeout = idle_timeout
        self.clock = clock or MonotonicClock()
        self.retry_handler = RetryHandler(policy, sleep=sleep, logger=logger)
        self.logger = logger
        self._session: Optional[Session] = None

    @property
    def state(self) -> SessionState:
        """Current session state."""
        if self._session is None:
            return SessionState.UNCONNECTED
        if self._session.is_expired(self.clock.now()):
            return SessionState.EXPIRED
        return SessionState.CONNECTED

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def connect(self) -> Session:
        """Log in and replace the current session."""
        token = self.retry_handler.execute(
            self.transport.login,
            self.username,
            self.api_key,
            operation="login"
        )
        self._session = Session(
            token=token,
            issued_at=self.clock.now(),
            idle_timeout=self.idle_timeout
        )

        if self.logger:
            self.logger.session_connected()

        return self._session

    def ensure_session(self) -> Session:
        """Reconnect when the session is missing or expired."""
        if self.state != SessionState.CONNECTED:
            return self.connect()
        return self._session

    def invalidate(self) -> None:
        """Drop the current session; the next call logs in again."""
        self._session = None

    def call(self, operation: str, *args) -> Any:
        """
        Invoke a remote operation with the current session token.

        Args:
            operation: Remote method name
            *args: Arguments passed after the session token

        Returns:
            Decoded remote result

        Raises:
            RemoteFault: If the call fails after all attempts
        """
        session = self.ensure_session()

        try:
            return self._dispatch(session, operation, *args)
        except SessionExpiredFault:
            # The server dropped the session before our idle timeout
            self.invalidate()
            session = self.connect()
            return self._dispatch(session, operation, *args)

    def _dispatch(self, session: Session, operation: str, *args) -> Any:
        return self.retry_handler.execute(
            self.transport.invoke,
            operation,
            session.token,
            *args,
            operation=operation
        )
