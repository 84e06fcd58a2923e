"""Reporter facade: submission path, attachment rendering, sync wrapper."""

import asyncio

import pytest

from slack_reporter import (
    AsyncSlackReporter,
    ConnectivityStatus,
    Feedback,
    FeedbackField,
    ProbeConnectivityMonitor,
    SlackReporter,
    StaticConnectivityMonitor,
    UploadState,
)
from slack_reporter.attachment import render_attachment, render_fallback
from slack_reporter.config import ConnectionMode

FEEDBACK = Feedback(
    title="Bug report",
    fields=[
        FeedbackField(identifier="summary", title="Summary", result="Crash on launch"),
        FeedbackField(identifier="steps", result="Open app"),
    ],
)


class TestAttachment:
    def test_fields_show_id_and_title(self):
        attachment = render_attachment(FEEDBACK)
        assert attachment["pretext"] == ""
        assert attachment["fields"] == [
            {"title": "summary: Summary", "value": "Crash on launch"},
            {"title": "steps: ", "value": "Open app"},
        ]

    def test_fields_without_ids(self):
        attachment = render_attachment(FEEDBACK, display_id=False)
        assert [f["title"] for f in attachment["fields"]] == ["Summary", ""]

    def test_fallback(self):
        assert render_fallback(FEEDBACK) == " \nSummary: Crash on launch\nsteps: Open app\n"
        assert render_fallback(Feedback(fields=[FeedbackField(result="x")])) == " \nNo ID: x\n"

    def test_system_fields_wrap_user_fields(self):
        version = FeedbackField(identifier="version", title="Version", result="1.2.0")
        device = FeedbackField(identifier="device", title="Device", result="Pixel")
        wrapped = FEEDBACK.with_system_fields(top=[version], bottom=[device])
        assert [f.identifier for f in wrapped.fields] == ["version", "summary", "steps", "device"]
        assert len(FEEDBACK.fields) == 2


@pytest.fixture
def reporter(config, transport, monitor):
    return AsyncSlackReporter(config, transport=transport, monitor=monitor)


class TestAsyncSlackReporter:
    @pytest.mark.asyncio
    async def test_submit_webhook(self, reporter, transport, config):
        assert await reporter.submit(FEEDBACK)
        sent = transport.calls[0]
        assert sent.token == config.default_token
        assert sent.name == "Bug report"
        assert sent.payload == render_attachment(FEEDBACK)
        assert reporter.upload_state is UploadState.NO_UPLOAD_REQUIRED

    @pytest.mark.asyncio
    async def test_submit_webhook_with_explicit_id(self, reporter, transport):
        assert await reporter.submit(FEEDBACK, token="T9/B9/Z9")
        assert transport.calls[0].token == "T9/B9/Z9"

    @pytest.mark.asyncio
    async def test_submit_authenticated(self, config, transport, monitor):
        cfg = config.model_copy(update={"connection_mode": ConnectionMode.AUTHENTICATED, "default_token": "xoxb-1"})
        reporter = AsyncSlackReporter(cfg, transport=transport, monitor=monitor)
        assert await reporter.submit(FEEDBACK, channel="#beta")
        assert (transport.calls[0].channel, transport.calls[0].name) == ("#beta", "Bug report")

    @pytest.mark.asyncio
    async def test_misconfiguration_is_swallowed(self, config, transport, monitor):
        cfg = config.model_copy(update={"default_token": ""})
        reporter = AsyncSlackReporter(cfg, transport=transport, monitor=monitor)
        assert await reporter.submit(FEEDBACK) is False

        cfg = config.model_copy(update={"connection_mode": ConnectionMode.AUTHENTICATED})
        reporter = AsyncSlackReporter(cfg, transport=transport, monitor=monitor)
        assert await reporter.submit(FEEDBACK, channel="") is False
        assert transport.calls == []
        assert not config.queue_path.exists()

    @pytest.mark.asyncio
    async def test_offline_submission_is_kept(self, reporter, transport, monitor):
        monitor.set_status(ConnectivityStatus.OFFLINE)
        assert await reporter.submit(FEEDBACK)
        assert transport.calls == []
        assert len(await reporter.coordinator.pending()) == 1

    @pytest.mark.asyncio
    async def test_save_failure_is_swallowed(self, config, transport, monitor, tmp_path):
        blocked = tmp_path / "blocked"
        blocked.mkdir()
        reporter = AsyncSlackReporter(config.model_copy(update={"queue_path": blocked}),
                                      transport=transport, monitor=monitor)
        assert await reporter.submit(FEEDBACK) is False

    @pytest.mark.asyncio
    async def test_start_flushes_backlog_and_watches_connectivity(self, config, transport, tmp_path):
        monitor = StaticConnectivityMonitor(ConnectivityStatus.OFFLINE)
        async with AsyncSlackReporter(config, transport=transport, monitor=monitor) as reporter:
            assert await reporter.submit(FEEDBACK)
            assert await reporter.submit(FEEDBACK.model_copy(update={"title": "Second"}))
            assert transport.calls == []

            monitor.set_status(ConnectivityStatus.WIFI)
            await reporter.coordinator.join()
            assert transport.names == ["Bug report", "Second"]
        assert transport.closed

    @pytest.mark.asyncio
    async def test_restart_delivers_previous_run(self, config, monitor, scripted_transport):
        offline = StaticConnectivityMonitor(ConnectivityStatus.OFFLINE)
        first_run = AsyncSlackReporter(config, transport=scripted_transport(), monitor=offline)
        await first_run.start()
        assert await first_run.submit(FEEDBACK)
        await first_run.close()

        transport = scripted_transport()
        second_run = AsyncSlackReporter(config, transport=transport, monitor=monitor)
        await second_run.start()
        assert transport.names == ["Bug report"]
        assert second_run.upload_state is UploadState.NO_UPLOAD_REQUIRED
        await second_run.close()

    @pytest.mark.asyncio
    async def test_failed_send_is_retried_on_flush(self, config, monitor, scripted_transport, fail_for):
        transport = scripted_transport(fail_for("Bug report"))
        reporter = AsyncSlackReporter(config, transport=transport, monitor=monitor)
        assert await reporter.submit(FEEDBACK)
        assert reporter.upload_state is UploadState.RETRY_UPLOAD

        transport.respond = fail_for()
        assert await reporter.flush() is UploadState.NO_UPLOAD_REQUIRED
        assert transport.names == ["Bug report", "Bug report"]

    @pytest.mark.asyncio
    async def test_submit_without_start_probes_connectivity(self, config, transport):
        server = await asyncio.start_server(lambda _r, w: w.close(), "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        monitor = ProbeConnectivityMonitor(host="127.0.0.1", port=port, interval=60)
        reporter = AsyncSlackReporter(config, transport=transport, monitor=monitor)
        try:
            assert await reporter.submit(FEEDBACK)
            await reporter.coordinator.join()
            assert transport.names == ["Bug report"]
            assert await reporter.coordinator.pending() == []
        finally:
            await reporter.close()
            server.close()
            await server.wait_closed()
        assert not monitor.monitoring

    @pytest.mark.asyncio
    async def test_close_survives_crashing_transport(self, config, scripted_transport):
        def crash(_envelope):
            raise RuntimeError("transport bug")

        transport = scripted_transport(crash)
        monitor = StaticConnectivityMonitor(ConnectivityStatus.OFFLINE)
        reporter = AsyncSlackReporter(config, transport=transport, monitor=monitor)
        assert await reporter.submit(FEEDBACK)

        monitor.set_status(ConnectivityStatus.WIFI)
        await reporter.close()
        assert transport.names == ["Bug report"]
        assert transport.closed
        assert len(await reporter.coordinator.pending()) == 1


def test_sync_wrapper(config, scripted_transport):
    transport = scripted_transport()
    reporter = SlackReporter(config=config, transport=transport, monitor=StaticConnectivityMonitor())
    try:
        reporter.start()
        assert reporter.submit(FEEDBACK)
        assert reporter.pending() == []
        assert reporter.flush() is UploadState.NO_UPLOAD_REQUIRED
    finally:
        reporter.close()
    assert transport.names == ["Bug report"]
    assert transport.closed
