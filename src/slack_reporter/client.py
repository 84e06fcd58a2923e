"""
AsyncSlackReporter / SlackReporter: the entry points a host app holds on to.

Build one reporter at start-up from a ReporterConfig and pass it to whatever
code submits feedback. Submitting never raises: a feedback form that cannot
be delivered is logged and, where possible, retried later.
"""

import asyncio
import logging
from typing import Any, Optional

from slack_reporter.attachment import render_attachment
from slack_reporter.config import ConnectionMode, ReporterConfig
from slack_reporter.connectivity import ConnectivityMonitor, ProbeConnectivityMonitor
from slack_reporter.coordinator import UploadCoordinator, UploadState
from slack_reporter.errors import (
    ChannelRequiredError,
    InvalidPayloadError,
    NoInternetConnectionError,
    SlackReporterError,
    TokenNotDefinedError,
)
from slack_reporter.models.envelope import Envelope
from slack_reporter.models.feedback import Feedback
from slack_reporter.store import DeadLetterLog, QueueStore
from slack_reporter.transport.http import SlackTransport, Transport

logger = logging.getLogger(__name__)

CONFIGURATION_ERRORS = (TokenNotDefinedError, ChannelRequiredError, InvalidPayloadError)


class AsyncSlackReporter:
    """Async feedback reporter (primary)."""

    def __init__(
        self,
        config: Optional[ReporterConfig] = None,
        transport: Optional[Transport] = None,
        monitor: Optional[ConnectivityMonitor] = None,
        store: Optional[QueueStore] = None,
    ):
        self.config = config or ReporterConfig()
        self.transport = transport or SlackTransport.from_config(self.config)
        self.monitor = monitor or ProbeConnectivityMonitor()
        self.store = store or QueueStore(self.config.queue_path)
        self.coordinator = UploadCoordinator(
            self.config,
            self.store,
            self.transport,
            self.monitor,
            dead_letters=DeadLetterLog(self.config.dead_letter_path),
        )
        self._remove_listener = None
        self._started = False

    @property
    def upload_state(self) -> UploadState:
        return self.coordinator.upload_state

    async def start(self) -> None:
        """Begin watching connectivity and retry anything left over from a previous run."""
        if self._started:
            return
        self._started = True
        self._remove_listener = self.monitor.add_listener(self.coordinator.handle_connectivity_change)
        await self.monitor.start_monitoring()
        await self._flush_quietly()

    async def close(self) -> None:
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        try:
            await self.monitor.stop_monitoring()
            await self.coordinator.join()
        finally:
            await self.transport.close()
            self._started = False

    async def __aenter__(self) -> "AsyncSlackReporter":
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def build_payload(self, feedback: Feedback) -> dict[str, Any]:
        return render_attachment(
            feedback,
            display_id=self.config.display_id,
            display_title=self.config.display_title,
        )

    async def submit(self, feedback: Feedback, token: str = "", channel: str = "") -> bool:
        """Render and queue a completed form.

        `token` is a webhook id in webhook mode (empty uses the default);
        `channel` is required in authenticated mode. Returns True when the
        submission was accepted, whether or not it has been delivered yet.
        The reporter is started on first use if `start()` was not called.
        """
        payload = self.build_payload(feedback)
        try:
            if self.config.connection_mode is ConnectionMode.AUTHENTICATED:
                envelope = self.coordinator.channel_envelope(payload, channel, name=feedback.title)
            else:
                envelope = self.coordinator.webhook_envelope(payload, webhook_id=token, name=feedback.title)
        except CONFIGURATION_ERRORS as e:
            logger.error(f"Feedback not submitted, reporter misconfigured: {e}")
            return False
        return await self.submit_envelope(envelope)

    async def submit_envelope(self, envelope: Envelope) -> bool:
        await self.start()
        try:
            await self.coordinator.enqueue(envelope)
        except NoInternetConnectionError:
            logger.info("Offline, feedback kept for a later upload")
            return not self.config.disable_queue
        except CONFIGURATION_ERRORS as e:
            logger.error(f"Feedback not submitted, reporter misconfigured: {e}")
            return False
        except SlackReporterError as e:
            logger.error(f"Feedback could not be queued: {e}")
            return False
        return True

    async def flush(self) -> UploadState:
        if not self._started:
            await self.start()
        else:
            await self._flush_quietly()
        return self.coordinator.upload_state

    async def _flush_quietly(self) -> None:
        try:
            await self.coordinator.flush()
        except NoInternetConnectionError:
            logger.debug("Offline, backlog kept for later")
        except SlackReporterError as e:
            logger.error(f"Flushing the upload queue failed: {e}")


class SlackReporter:
    """Sync wrapper around AsyncSlackReporter. Runs the event loop internally."""

    def __init__(self, **kwargs: Any):
        self._loop = asyncio.new_event_loop()
        self._async = AsyncSlackReporter(**kwargs)

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    @property
    def config(self) -> ReporterConfig:
        return self._async.config

    @property
    def upload_state(self) -> UploadState:
        return self._async.upload_state

    @property
    def coordinator(self) -> UploadCoordinator:
        return self._async.coordinator

    def start(self) -> None:
        self._run(self._async.start())

    def submit(self, feedback: Feedback, token: str = "", channel: str = "") -> bool:
        return self._run(self._async.submit(feedback, token=token, channel=channel))

    def flush(self) -> UploadState:
        return self._run(self._async.flush())

    def pending(self) -> list[Envelope]:
        return self._run(self._async.coordinator.pending())

    def close(self) -> None:
        try:
            self._run(self._async.close())
        finally:
            self._loop.close()
