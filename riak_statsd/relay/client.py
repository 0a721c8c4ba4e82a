"""
Riak HTTP Client.

Talks to the Riak node's HTTP interface: a liveness check against /ping
and a fetch of the /stats status document.
"""

import asyncio
import json
import logging
from typing import Any, Optional

import aiohttp

logger = logging.getLogger(__name__)


class RiakError(Exception):
    """Base error for Riak HTTP calls."""


class LivenessCheckError(RiakError):
    """The node did not answer /ping with OK."""


class StatsFetchError(RiakError):
    """The /stats document could not be retrieved or decoded."""


class RiakClient:
    """
    Client for the Riak HTTP interface.

    A single session is shared by every caller, so overlapping relay
    cycles reuse the same connection pool.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 8098,
        timeout: Optional[float] = None,
    ):
        """Initialize the client."""
        self.host = host
        self.port = port
        self.timeout = timeout
        self.base_url = f"http://{host}:{port}"

        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            if self.timeout is not None:
                self._session = aiohttp.ClientSession(
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                )
            else:
                self._session = aiohttp.ClientSession()
        return self._session

    async def _get(self, path: str) -> tuple[int, str]:
        """GET a path and return status and body text."""
        session = await self._get_session()
        async with session.get(f"{self.base_url}{path}") as response:
            body = await response.text()
            return response.status, body

    async def check_liveness(self) -> None:
        """
        Ping the node.

        Raises LivenessCheckError unless the node answers 2xx with a body
        of exactly ``OK``.
        """
        try:
            status, body = await self._get("/ping")
        except asyncio.TimeoutError:
            raise LivenessCheckError(f"Ping to {self.base_url} timed out")
        except aiohttp.ClientError as e:
            raise LivenessCheckError(f"Ping to {self.base_url} failed: {e}") from e
        except UnicodeDecodeError as e:
            raise LivenessCheckError("Error reading response") from e

        if not 200 <= status < 300:
            raise LivenessCheckError(f"Ping returned HTTP {status}. Response was: {body}")
        if body != "OK":
            raise LivenessCheckError(f"Not OK. Response was: {body}")

    async def fetch_stats(self) -> dict[str, Any]:
        """
        Fetch and decode the /stats document.

        Raises StatsFetchError on transport errors, non-2xx responses,
        malformed JSON, or JSON that is not an object.
        """
        try:
            status, body = await self._get("/stats")
        except asyncio.TimeoutError:
            raise StatsFetchError(f"Stats request to {self.base_url} timed out")
        except aiohttp.ClientError as e:
            raise StatsFetchError(f"Stats request to {self.base_url} failed: {e}") from e
        except UnicodeDecodeError as e:
            raise StatsFetchError("Error reading response") from e

        if not 200 <= status < 300:
            raise StatsFetchError(f"Stats returned HTTP {status}")

        try:
            data = json.loads(body)
        except (ValueError, RecursionError) as e:
            raise StatsFetchError(f"Invalid stats JSON: {e}") from e

        if not isinstance(data, dict):
            raise StatsFetchError(
                f"Expected a JSON object from /stats, got {type(data).__name__}"
            )

        return data

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
