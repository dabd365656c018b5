"""
BELEX Base Actor

Base class for BELEX pipeline actors with supervision support.
Implements the Actor Model pattern with message passing.

Each actor processes its mailbox one message at a time, so an actor that
owns a resource (browser, store) is also its single user.
"""
import asyncio
import logging
import re
import uuid
from typing import Optional, Any
from abc import ABC

from belex_scraper.infrastructure.actors.belex_messages import (
    PipelineState,
    GetStatus,
    ActorError,
)
from belex_scraper.infrastructure.adapters.belex_errors import BelexAdapterError


logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])')


class BelexBaseActor(ABC):
    """
    Base class for BELEX pipeline actors.

    Features:
    - Async message processing via mailbox
    - tell() for fire-and-forget messages
    - ask() for request-response patterns
    - Handler failures become ActorError replies (ask) or are escalated to
      the supervisor (tell)
    - Lifecycle hooks (on_start, on_stop)
    """

    def __init__(
        self,
        actor_id: Optional[str] = None,
        supervisor: Optional["BelexBaseActor"] = None,
    ):
        self._actor_id = actor_id or f"belex-actor-{uuid.uuid4().hex[:8]}"
        self._supervisor = supervisor
        self._state = PipelineState.STARTING
        self._running = False
        self._mailbox: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._pending_asks: dict = {}

    @property
    def actor_id(self) -> str:
        return self._actor_id

    @property
    def supervisor(self) -> Optional["BelexBaseActor"]:
        return self._supervisor

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    def _set_state(self, state: PipelineState) -> None:
        self._state = state

    async def start(self) -> None:
        """Start the actor."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._process_mailbox())
        await self.on_start()
        logger.debug(f"Actor {self._actor_id} started")

    async def stop(self) -> None:
        """Stop the actor. Pending asks are cancelled."""
        if not self._running:
            return

        self._running = False
        await self.on_stop()

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        for future in self._pending_asks.values():
            if not future.done():
                future.cancel()
        self._pending_asks.clear()

        logger.debug(f"Actor {self._actor_id} stopped")

    async def on_start(self) -> None:
        """Hook called during start. Override in subclasses."""
        pass

    async def on_stop(self) -> None:
        """Hook called during stop. Override in subclasses."""
        pass

    async def tell(self, message: Any) -> None:
        """
        Send message without waiting for response (fire-and-forget).

        Args:
            message: The message to send
        """
        await self._mailbox.put((message, None))

    async def ask(self, message: Any, timeout: Optional[float] = 30.0) -> Any:
        """
        Send message and wait for response.

        Args:
            message: The message to send
            timeout: Timeout in seconds, None to wait indefinitely

        Returns:
            Response from handler, or ActorError if the handler failed

        Raises:
            asyncio.TimeoutError: If timeout exceeded
        """
        response_future: asyncio.Future = asyncio.get_running_loop().create_future()
        request_id = uuid.uuid4().hex
        self._pending_asks[request_id] = response_future

        await self._mailbox.put((message, request_id))

        try:
            return await asyncio.wait_for(response_future, timeout)
        except asyncio.TimeoutError:
            self._pending_asks.pop(request_id, None)
            raise

    async def receive(self, message: Any, escalate: bool = True) -> Any:
        """
        Process a received message.

        Args:
            message: The message to process
            escalate: Send handler failures to the supervisor

        Returns:
            Handler response, or ActorError if the handler raised
        """
        handler_name = self._get_handler_name(message)
        handler = getattr(self, handler_name, None)

        if handler is None:
            logger.warning(f"No handler for {type(message).__name__} in {self._actor_id}")
            return None

        try:
            return await handler(message)
        except Exception as e:
            logger.error(f"Error handling {type(message).__name__}: {e}")
            error_msg = self._handle_error(e, message)
            if escalate:
                await self.escalate(error_msg)
            return error_msg

    def _get_handler_name(self, message: Any) -> str:
        """Get handler method name for message type (ScrapeLawText -> handle_scrape_law_text)."""
        snake_case = _CAMEL_BOUNDARY.sub('_', type(message).__name__).lower()
        return f"handle_{snake_case}"

    async def escalate(self, error: ActorError) -> None:
        """
        Escalate error to supervisor.

        Args:
            error: The error to escalate
        """
        if self._supervisor:
            await self._supervisor.tell(error)
        else:
            logger.error(f"No supervisor to escalate: {error.message}")

    def _handle_error(self, exception: Exception, message: Any = None) -> ActorError:
        """
        Create error message from exception.

        Args:
            exception: The exception to convert
            message: Message whose handler raised

        Returns:
            ActorError message
        """
        recoverable = True
        if isinstance(exception, BelexAdapterError):
            recoverable = exception.recoverable

        context = {"actor_id": self._actor_id}
        if message is not None:
            context["message_type"] = type(message).__name__

        return ActorError(
            message=str(exception),
            error_type=type(exception).__name__,
            recoverable=recoverable,
            context=context,
        )

    async def _process_mailbox(self) -> None:
        """Process messages from mailbox."""
        while self._running:
            try:
                message, request_id = await asyncio.wait_for(
                    self._mailbox.get(),
                    timeout=1.0
                )

                result = await self.receive(message, escalate=request_id is None)

                if request_id and request_id in self._pending_asks:
                    future = self._pending_asks.pop(request_id)
                    if not future.done():
                        future.set_result(result)

            except asyncio.TimeoutError:
                # No message, continue loop
                continue
            except asyncio.CancelledError:
                break

    # Default handlers that can be overridden

    async def handle_get_status(self, msg: GetStatus) -> PipelineState:
        """Handle state query."""
        return self._state
