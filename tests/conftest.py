import asyncio
from typing import Callable, Optional

import pytest

from slack_reporter import (
    ConnectivityStatus,
    DeadLetterLog,
    Envelope,
    QueueStore,
    ReporterConfig,
    SendOutcome,
    StaticConnectivityMonitor,
    Transport,
    UploadCoordinator,
)


class ScriptedTransport(Transport):
    """Records every send; answers with `respond(envelope)` (success by default).

    When `gate` is set, each send blocks until the event is set, which lets a
    test hold an upload in flight.
    """

    def __init__(self, respond: Optional[Callable[[Envelope], SendOutcome]] = None):
        self.respond = respond or (lambda _e: SendOutcome.success(b"ok"))
        self.calls: list[Envelope] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.gate: Optional[asyncio.Event] = None
        self.closed = False

    @property
    def names(self) -> list[str]:
        return [e.name for e in self.calls]

    async def send(self, envelope: Envelope) -> SendOutcome:
        self.calls.append(envelope)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            return self.respond(envelope)
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True


def _fail_for(*names: str) -> Callable[[Envelope], SendOutcome]:
    def respond(envelope: Envelope) -> SendOutcome:
        if envelope.name in names:
            return SendOutcome.server_error(500)
        return SendOutcome.success(b"ok")
    return respond


async def _wait_for_calls(transport: ScriptedTransport, n: int) -> None:
    for _ in range(200):
        if len(transport.calls) >= n:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {n} transport calls, got {len(transport.calls)}")


@pytest.fixture
def scripted_transport():
    """Factory for transports with a custom `respond`."""
    return ScriptedTransport


@pytest.fixture
def fail_for():
    """`fail_for(*names)` answers HTTP 500 for the named envelopes, success otherwise."""
    return _fail_for


@pytest.fixture
def wait_for_calls():
    return _wait_for_calls


@pytest.fixture
def config(tmp_path) -> ReporterConfig:
    return ReporterConfig(
        default_token="T000/B000/XXXX",
        queue_path=tmp_path / "queue.json",
        dead_letter_path=tmp_path / "dead_letters.jsonl",
    )


@pytest.fixture
def store(config) -> QueueStore:
    return QueueStore(config.queue_path)


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def monitor() -> StaticConnectivityMonitor:
    return StaticConnectivityMonitor(ConnectivityStatus.WIFI)


@pytest.fixture
def make_coordinator(store, transport, monitor):
    def make(cfg: ReporterConfig) -> UploadCoordinator:
        coordinator = UploadCoordinator(cfg, store, transport, monitor, dead_letters=DeadLetterLog(cfg.dead_letter_path))
        monitor.add_listener(coordinator.handle_connectivity_change)
        return coordinator
    return make


@pytest.fixture
def coordinator(make_coordinator, config) -> UploadCoordinator:
    return make_coordinator(config)
