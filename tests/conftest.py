"""
Shared fixtures: a fake Riak HTTP node and a fake statsd UDP collector.
"""

import asyncio
import json
import threading
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web


class FakeRiak:
    """Minimal Riak HTTP interface serving /ping and /stats."""

    def __init__(self):
        self.ping_body = "OK"
        self.ping_status = 200
        self.stats: Any = {"node_gets": 42, "pbc_active": 3}
        self.stats_body = None  # raw body, overrides stats
        self.stats_status = 200
        self.stats_delay = 0.0
        self.ping_count = 0
        self.stats_count = 0
        self.port = None

    async def handle_ping(self, request: web.Request) -> web.Response:
        self.ping_count += 1
        return web.Response(text=self.ping_body, status=self.ping_status)

    async def handle_stats(self, request: web.Request) -> web.Response:
        self.stats_count += 1
        if self.stats_delay:
            await asyncio.sleep(self.stats_delay)
        body = self.stats_body if self.stats_body is not None else json.dumps(self.stats)
        return web.Response(
            text=body,
            status=self.stats_status,
            content_type="application/json",
        )

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/ping", self.handle_ping)
        app.router.add_get("/stats", self.handle_stats)
        return app


class StatsdReceiver(asyncio.DatagramProtocol):
    """Collects datagrams sent to the fake statsd."""

    def __init__(self):
        self.datagrams: asyncio.Queue = asyncio.Queue()
        self.port = None

    def datagram_received(self, data: bytes, addr) -> None:
        self.datagrams.put_nowait(data)

    async def next_lines(self, timeout: float = 2.0) -> list[str]:
        data = await asyncio.wait_for(self.datagrams.get(), timeout)
        return data.decode("utf-8").split("\n")


@pytest_asyncio.fixture
async def riak():
    """Fake Riak node on an ephemeral port."""
    fake = FakeRiak()
    runner = web.AppRunner(fake.make_app())
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    fake.port = runner.addresses[0][1]
    yield fake
    await runner.cleanup()


@pytest.fixture
def riak_thread():
    """Fake Riak node served from a background thread, for tests that run their own loop."""
    fake = FakeRiak()
    loop = asyncio.new_event_loop()
    ready = threading.Event()
    runners = []

    async def serve():
        runner = web.AppRunner(fake.make_app())
        runners.append(runner)
        await runner.setup()
        site = web.TCPSite(runner, "127.0.0.1", 0)
        await site.start()
        fake.port = runner.addresses[0][1]
        ready.set()

    def main():
        asyncio.set_event_loop(loop)
        loop.run_until_complete(serve())
        loop.run_forever()
        loop.run_until_complete(runners[0].cleanup())
        loop.close()

    thread = threading.Thread(target=main, daemon=True)
    thread.start()
    assert ready.wait(5)
    yield fake
    loop.call_soon_threadsafe(loop.stop)
    thread.join(5)


@pytest_asyncio.fixture
async def statsd():
    """Fake statsd collector on an ephemeral UDP port."""
    loop = asyncio.get_running_loop()
    receiver = StatsdReceiver()
    transport, _ = await loop.create_datagram_endpoint(
        lambda: receiver,
        local_addr=("127.0.0.1", 0),
    )
    receiver.port = transport.get_extra_info("sockname")[1]
    yield receiver
    transport.close()


@pytest.fixture
def riak_stats():
    """A status document with every whitelisted stat."""
    from riak_statsd.relay.metrics import METRIC_TYPES

    stats = {name: i for i, name in enumerate(METRIC_TYPES)}
    stats["node_get_fsm_time_95"] = 1250.5
    stats["nodename"] = "riak@127.0.0.1"
    return stats
