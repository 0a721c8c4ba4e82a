"""
Riak Statsd Relay - Main Daemon.

Polls the Riak node's /stats endpoint on a fixed interval and relays the
whitelisted metrics to statsd over UDP.
"""

import asyncio
import logging
import signal
from enum import Enum
from typing import Optional

from ..config import Settings, settings
from .client import LivenessCheckError, RiakClient, StatsFetchError
from .metrics import MetricEncoder, build_payload
from .sender import SendResult, StatsdSender

logger = logging.getLogger(__name__)

RELAY_INTERVAL = 60  # seconds


class AgentState(str, Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"


class RelayStartupError(Exception):
    """The relay connection to statsd could not be opened."""


class RelayAgent:
    """
    Main relay daemon.

    Starts in INITIALIZING, opens the statsd connection and pings Riak,
    then moves to RUNNING and fires one relay cycle per interval. Each
    cycle runs as its own task, so a slow Riak never delays the next
    tick and cycles may overlap.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[RiakClient] = None,
        sender: Optional[StatsdSender] = None,
        encoder: Optional[MetricEncoder] = None,
        interval: float = RELAY_INTERVAL,
    ):
        """Initialize the relay agent."""
        self.config = config or settings
        self.interval = interval

        self.client = client or RiakClient(
            host=self.config.riak_host,
            port=self.config.riak_http_port,
            timeout=self.config.riak_timeout,
        )
        self.sender = sender or StatsdSender(
            host=self.config.statsd_host,
            port=self.config.statsd_port,
        )
        self.encoder = encoder or MetricEncoder()

        # State
        self.state = AgentState.INITIALIZING
        self._timer_task: Optional[asyncio.Task] = None
        # References only, so the event loop does not drop in-flight cycles
        self._cycles: set[asyncio.Task] = set()

    async def start(self):
        """
        Open the statsd connection and check that Riak is alive.

        Raises RelayStartupError or LivenessCheckError. Neither is retried.
        """
        logger.info(f"Starting Riak statsd relay for node '{self.config.nodename}'")

        try:
            await self.sender.connect()
        except OSError as e:
            raise RelayStartupError(
                f"Couldn't connect to statsd at {self.sender.address}: {e}"
            ) from e

        await self.client.check_liveness()
        logger.info(f"Riak at {self.client.base_url} is alive")

        self.state = AgentState.RUNNING

    async def run(self):
        """Start the relay and tick until stopped."""
        await self.start()

        self._timer_task = asyncio.create_task(self._timer())
        logger.info(f"Relaying {len(self.encoder)} metrics every {self.interval}s")

        try:
            await self._timer_task
        except asyncio.CancelledError:
            if asyncio.current_task().cancelling():
                raise
            logger.info("Relay timer stopped")

    async def stop(self):
        """Stop the timer, drop in-flight cycles and release connections."""
        if self._timer_task and not self._timer_task.done():
            logger.info("Stopping relay...")
            self._timer_task.cancel()

        for task in list(self._cycles):
            task.cancel()
        if self._cycles:
            await asyncio.gather(*self._cycles, return_exceptions=True)

        await self.client.close()
        self.sender.close()

    async def _timer(self):
        """Dispatch a relay cycle every interval."""
        while True:
            await asyncio.sleep(self.interval)
            self.dispatch_cycle()

    def dispatch_cycle(self) -> asyncio.Task:
        """Run a relay cycle in the background without waiting for it."""
        task = asyncio.create_task(self.run_cycle())
        self._cycles.add(task)
        task.add_done_callback(self._cycles.discard)
        return task

    async def run_cycle(self) -> Optional[SendResult]:
        """
        Fetch, encode and send the stats once.

        Returns None when the fetch fails and the cycle is skipped.
        """
        try:
            status = await self.client.fetch_stats()
        except StatsFetchError as e:
            logger.warning(f"Skipping cycle, no stats from {self.client.base_url}: {e}")
            return None

        lines = self.encoder.encode(self.config.nodename, status)
        result = self.sender.send(build_payload(lines))
        if result.success:
            logger.debug(f"Sent {len(lines)} metrics ({result.bytes_sent} bytes)")
        return result


def run_relay(config: Optional[Settings] = None) -> int:
    """Run the relay until terminated. Returns the process exit code."""
    agent = RelayAgent(config)

    async def main():
        loop = asyncio.get_running_loop()
        stopping: set[asyncio.Task] = set()

        def request_stop():
            task = asyncio.create_task(agent.stop())
            stopping.add(task)
            task.add_done_callback(stopping.discard)

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, request_stop)

        try:
            await agent.run()
        finally:
            await agent.stop()

    try:
        asyncio.run(main())
    except RelayStartupError as e:
        logger.error(f"Error: {e}")
        return 1
    except LivenessCheckError as e:
        logger.error(f"Error: Riak liveness check failed: {e}")
        return 1

    return 0
