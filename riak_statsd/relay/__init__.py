"""
Riak Statsd Relay - polls Riak node stats and relays them to statsd.

Fetches the /stats document from a Riak node every minute, picks the
interesting metrics and sends them to statsd as one UDP datagram.
"""

from .agent import AgentState, RelayAgent, RelayStartupError, run_relay
from .client import LivenessCheckError, RiakClient, RiakError, StatsFetchError
from .metrics import METRIC_TYPES, MetricEncoder, MetricType
from .sender import SendResult, StatsdSender

__all__ = [
    "AgentState",
    "RelayAgent",
    "RelayStartupError",
    "run_relay",
    "RiakClient",
    "RiakError",
    "LivenessCheckError",
    "StatsFetchError",
    "METRIC_TYPES",
    "MetricEncoder",
    "MetricType",
    "SendResult",
    "StatsdSender",
]
