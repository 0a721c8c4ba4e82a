"""
Statsd Sender.

Owns the single UDP relay connection to the statsd collector and writes
one datagram per relay cycle. Sends are best-effort: no buffering, no
retries.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    """Result of a send operation."""
    success: bool
    bytes_sent: int = 0
    error: Optional[str] = None


class _StatsdProtocol(asyncio.DatagramProtocol):
    """Logs errors reported asynchronously by the UDP transport."""

    def __init__(self, address: str):
        self.address = address

    def error_received(self, exc: Exception) -> None:
        logger.error(f"Error sending metrics to statsd at {self.address}: {exc}")


class StatsdSender:
    """
    Sends encoded metric payloads to statsd.

    The transport is connected once and shared by all cycles. Each send is
    one complete datagram, so concurrent callers need no locking.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 8125):
        """Initialize the sender."""
        self.host = host
        self.port = port
        self.address = f"{host}:{port}"

        self._transport: Optional[asyncio.DatagramTransport] = None

    @property
    def connected(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    async def connect(self) -> None:
        """
        Resolve the statsd address and open the UDP connection.

        Raises OSError (socket.gaierror for unresolvable hosts).
        """
        loop = asyncio.get_running_loop()
        transport, _ = await loop.create_datagram_endpoint(
            lambda: _StatsdProtocol(self.address),
            remote_addr=(self.host, self.port),
        )
        self._transport = transport
        logger.info(f"Connected to statsd at {self.address}")

    def send(self, payload: bytes) -> SendResult:
        """Write a payload as a single datagram."""
        if not self.connected:
            error = f"Not connected to statsd at {self.address}"
            logger.error(f"Error sending metrics: {error}")
            return SendResult(success=False, error=error)

        try:
            self._transport.sendto(payload)
        except OSError as e:
            logger.error(f"Error sending metrics: {e}")
            return SendResult(success=False, error=str(e))

        return SendResult(success=True, bytes_sent=len(payload))

    def close(self) -> None:
        """Close the UDP transport."""
        if self._transport is not None:
            self._transport.close()
            self._transport = None
