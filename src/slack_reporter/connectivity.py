"""
Connectivity monitoring.

A monitor answers "are we online right now" and notifies listeners when
reachability changes. ProbeConnectivityMonitor polls a TCP endpoint;
StaticConnectivityMonitor reports whatever it is told and never touches
the network.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Listener = Callable[["ConnectivityStatus"], None]


class ConnectivityStatus(str, Enum):
    OFFLINE = "offline"
    WIFI = "wifi"
    WWAN = "wwan"

    @property
    def is_online(self) -> bool:
        return self is not ConnectivityStatus.OFFLINE


class ConnectivityMonitor:
    def __init__(self, status: ConnectivityStatus = ConnectivityStatus.OFFLINE) -> None:
        self._status = status
        self._listeners: list[Listener] = []

    def current_status(self) -> ConnectivityStatus:
        return self._status

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    async def start_monitoring(self) -> None:
        raise NotImplementedError

    async def stop_monitoring(self) -> None:
        raise NotImplementedError

    def _update(self, status: ConnectivityStatus) -> None:
        if status == self._status:
            return
        logger.info(f"Connectivity changed: {self._status.value} -> {status.value}")
        self._status = status
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:
                logger.exception("Connectivity listener failed")


class ProbeConnectivityMonitor(ConnectivityMonitor):
    """Treats the network as reachable when a TCP connect to host:port succeeds."""

    def __init__(
        self,
        host: str = "slack.com",
        port: int = 443,
        interval: float = 10.0,
        timeout: float = 3.0,
        online_status: ConnectivityStatus = ConnectivityStatus.WIFI,
    ):
        super().__init__(ConnectivityStatus.OFFLINE)
        self._host = host
        self._port = port
        self._interval = interval
        self._timeout = timeout
        self._online_status = online_status
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def monitoring(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _probe(self) -> bool:
        try:
            _reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port), timeout=self._timeout,
            )
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    async def refresh(self) -> ConnectivityStatus:
        """Probe once and publish the result."""
        reachable = await self._probe()
        self._update(self._online_status if reachable else ConnectivityStatus.OFFLINE)
        return self._status

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.refresh()

    async def start_monitoring(self) -> None:
        if self.monitoring:
            return
        # Establish the initial status before anyone asks for it
        await self.refresh()
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop_monitoring(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


class StaticConnectivityMonitor(ConnectivityMonitor):
    """Fixed-status monitor for tests and hosts that track reachability themselves."""

    def __init__(self, status: ConnectivityStatus = ConnectivityStatus.WIFI):
        super().__init__(status)

    def set_status(self, status: ConnectivityStatus) -> None:
        self._update(status)

    async def start_monitoring(self) -> None:
        pass

    async def stop_monitoring(self) -> None:
        pass
