"""
Upload coordinator: the single writer of the persisted queue.

Submissions are appended to the durable queue and drained strictly in FIFO
order, one transport call at a time. A failed send leaves the head where it
is and stops the drain; the next trigger (a new submission, a connectivity
change, a restart, an explicit flush) starts over from the head.

Concurrency: one asyncio.Lock covers every store read/write and the
transport call, so there is never more than one upload in flight and never
two concurrent mutations of the queue file. Only one drain loop runs at a
time; submissions that arrive while it runs are appended behind the lock and
picked up by that loop in order.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError

from slack_reporter.config import ReporterConfig
from slack_reporter.connectivity import ConnectivityMonitor, ConnectivityStatus
from slack_reporter.errors import (
    ChannelRequiredError,
    InvalidPayloadError,
    NoInternetConnectionError,
    SlackReporterError,
    TokenNotDefinedError,
)
from slack_reporter.models.envelope import Envelope, is_json_compliant
from slack_reporter.models.outcome import OutcomeKind, SendOutcome
from slack_reporter.store import DeadLetterLog, QueueStore
from slack_reporter.transport.http import Transport

logger = logging.getLogger(__name__)


class UploadState(str, Enum):
    NO_UPLOAD_REQUIRED = "no_upload_required"
    RETRY_UPLOAD = "retry_upload"


def _describe(envelope: Envelope) -> str:
    target = envelope.channel if envelope.channel else "webhook"
    return f"{envelope.name or 'submission'!r} ({target})"


class UploadCoordinator:
    def __init__(
        self,
        config: ReporterConfig,
        store: QueueStore,
        transport: Transport,
        monitor: ConnectivityMonitor,
        dead_letters: Optional[DeadLetterLog] = None,
    ):
        self._config = config
        self._store = store
        self._transport = transport
        self._monitor = monitor
        self._dead_letters = dead_letters
        self._lock = asyncio.Lock()
        self._draining = False
        self._upload_state = UploadState.NO_UPLOAD_REQUIRED
        self._failing_head: Optional[Envelope] = None
        self._failures = 0
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def upload_state(self) -> UploadState:
        return self._upload_state

    @property
    def draining(self) -> bool:
        return self._draining

    # -- building envelopes ------------------------------------------------

    def _check_payload(self, payload: Any) -> None:
        if not isinstance(payload, dict) or not is_json_compliant(payload):
            raise InvalidPayloadError(
                "Payload must be a JSON-serializable object",
                details={"type": type(payload).__name__},
            )

    def _build(self, **fields: Any) -> Envelope:
        try:
            return Envelope(**fields)
        except ValidationError as e:
            raise InvalidPayloadError(
                "Payload must be a JSON-serializable object",
                details={"error": str(e)},
            ) from e

    def webhook_envelope(self, payload: dict[str, Any], webhook_id: str = "", name: str = "") -> Envelope:
        """Envelope for an incoming webhook; falls back to the default token."""
        token = webhook_id or self._config.default_token
        if not token:
            raise TokenNotDefinedError()
        self._check_payload(payload)
        return self._build(token=token, payload=payload, channel="", name=name)

    def channel_envelope(self, payload: dict[str, Any], channel: str, name: str = "", token: str = "") -> Envelope:
        """Envelope for chat.postMessage; needs an API token and a channel."""
        token = token or self._config.default_token
        if not token:
            raise TokenNotDefinedError()
        if not channel:
            raise ChannelRequiredError()
        self._check_payload(payload)
        return self._build(token=token, payload=payload, channel=channel, name=name)

    # -- public operations -------------------------------------------------

    async def enqueue_webhook(self, payload: dict[str, Any], webhook_id: str = "", name: str = "") -> UploadState:
        return await self.enqueue(self.webhook_envelope(payload, webhook_id, name))

    async def enqueue_channel(self, payload: dict[str, Any], channel: str, name: str = "") -> UploadState:
        return await self.enqueue(self.channel_envelope(payload, channel, name))

    async def enqueue(self, envelope: Optional[Envelope] = None) -> UploadState:
        """Queue an envelope (if given) and try to drain the queue.

        Raises NoInternetConnectionError when there is work but no network;
        the queue is left intact. CouldNotSaveJSONError when the new envelope
        could not be persisted.
        """
        if envelope is not None:
            if not envelope.token:
                envelope = envelope.model_copy(update={"token": self._config.default_token})
                if not envelope.token:
                    raise TokenNotDefinedError()
            self._check_payload(envelope.payload)

        if self._config.disable_queue:
            if envelope is not None:
                await self._send_unqueued(envelope)
            return self._upload_state

        if envelope is not None:
            async with self._lock:
                queue = self._store.append(envelope)
            logger.debug(f"Queued {_describe(envelope)}, {len(queue)} pending")

        await self._drain()
        return self._upload_state

    async def flush(self) -> UploadState:
        """Retry whatever is persisted; a no-op on an empty queue."""
        return await self.enqueue(None)

    async def pending(self) -> list[Envelope]:
        async with self._lock:
            return self._store.load()

    async def discard_head(self) -> Optional[Envelope]:
        """Remove the head without sending it, unblocking the envelopes behind it."""
        async with self._lock:
            head = self._store.remove_first()
            self._reset_failures()
            if not self._store.load():
                self._upload_state = UploadState.NO_UPLOAD_REQUIRED
        if head is not None:
            logger.info(f"Discarded {_describe(head)} from the upload queue")
        return head

    async def clear(self) -> int:
        async with self._lock:
            count = len(self._store.load())
            self._store.clear()
            self._reset_failures()
            self._upload_state = UploadState.NO_UPLOAD_REQUIRED
        return count

    def handle_connectivity_change(self, status: ConnectivityStatus) -> None:
        """Connectivity listener: schedule a flush on the running loop once back online."""
        if not status.is_online:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"Connectivity changed to {status.value} outside an event loop; flush skipped")
            return
        task = loop.create_task(self._flush_quietly())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def join(self) -> None:
        """Wait for flushes scheduled by connectivity changes."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # -- internals ---------------------------------------------------------

    async def _flush_quietly(self) -> None:
        try:
            await self.flush()
        except NoInternetConnectionError:
            logger.debug("Still offline, upload deferred")
        except SlackReporterError as e:
            logger.error(f"Background flush failed: {e}")
        except Exception:
            logger.exception("Background flush crashed")

    async def _send_unqueued(self, envelope: Envelope) -> None:
        async with self._lock:
            if not self._monitor.current_status().is_online:
                logger.warning(f"Offline with queueing disabled, dropping {_describe(envelope)}")
                raise NoInternetConnectionError()
            outcome = await self._transport.send(envelope)
        if outcome.ok:
            logger.info(f"Delivered {_describe(envelope)}")
        else:
            logger.warning(f"Upload of {_describe(envelope)} failed ({outcome.describe()}), queueing disabled so it is dropped")

    async def _drain(self) -> None:
        if self._draining:
            logger.debug("Drain already in progress")
            return
        self._draining = True
        try:
            while await self._drain_step():
                pass
        finally:
            self._draining = False

    async def _drain_step(self) -> bool:
        """Attempt the head of the queue. Returns True if the drain should continue."""
        async with self._lock:
            queue = self._store.load()
            if not queue:
                self._upload_state = UploadState.NO_UPLOAD_REQUIRED
                return False
            if not self._monitor.current_status().is_online:
                self._upload_state = UploadState.RETRY_UPLOAD
                raise NoInternetConnectionError()
            head = queue[0]
            logger.debug(f"Sending {_describe(head)}, {len(queue)} pending")
            outcome = await self._transport.send(head)
            return self._apply_outcome(head, outcome)

    def _apply_outcome(self, head: Envelope, outcome: SendOutcome) -> bool:
        kind = outcome.kind
        if kind is OutcomeKind.SUCCESS:
            logger.info(f"Delivered {_describe(head)}")
            self._reset_failures()
            self._store.remove_first()
            return True
        if kind in (OutcomeKind.INTERNAL_ERROR, OutcomeKind.REQUEST_ERROR, OutcomeKind.SERVER_RESPONSE_ERROR):
            self._upload_state = UploadState.RETRY_UPLOAD
            return self._record_failure(head, outcome)
        raise ValueError(f"Unknown outcome kind: {kind!r}")

    def _record_failure(self, head: Envelope, outcome: SendOutcome) -> bool:
        if head == self._failing_head:
            self._failures += 1
        else:
            self._failing_head = head
            self._failures = 1

        limit = self._config.max_attempts
        if limit is None or self._failures < limit:
            logger.warning(f"Upload of {_describe(head)} failed ({outcome.describe()}), will retry")
            return False

        logger.error(f"Giving up on {_describe(head)} after {self._failures} attempts ({outcome.describe()})")
        if self._dead_letters is not None:
            try:
                self._dead_letters.push(head, outcome.describe(), self._failures)
            except OSError as e:
                logger.error(f"Could not record dead letter: {e}")
        self._reset_failures()
        self._store.remove_first()
        return True

    def _reset_failures(self) -> None:
        self._failing_head = None
        self._failures = 0
