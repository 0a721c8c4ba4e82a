"""
Metric Selection and Encoding.

Selects the whitelisted Riak stats and encodes them as statsd lines.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping


class MetricType(str, Enum):
    """Statsd type tags."""
    GAUGE = "g"
    TIMING = "ms"


G = MetricType.GAUGE
MS = MetricType.TIMING

# The interesting Riak stats and their statsd types
METRIC_TYPES: Mapping[str, MetricType] = MappingProxyType({
    # Throughput
    "node_gets": G,
    "node_puts": G,
    "vnode_gets": G,
    "vnode_puts": G,
    "read_repairs": G,
    "read_repairs_total": G,

    # Object sizes
    "node_get_fsm_objsize_mean": G,
    "node_get_fsm_objsize_median": G,
    "node_get_fsm_objsize_95": G,
    "node_get_fsm_objsize_100": G,

    # Latencies
    "node_get_fsm_time_mean": MS,
    "node_get_fsm_time_median": MS,
    "node_get_fsm_time_95": MS,
    "node_get_fsm_time_100": MS,
    "node_put_fsm_time_mean": MS,
    "node_put_fsm_time_median": MS,
    "node_put_fsm_time_95": MS,
    "node_put_fsm_time_100": MS,

    # Siblings
    "node_get_fsm_siblings_mean": G,
    "node_get_fsm_siblings_median": G,
    "node_get_fsm_siblings_95": G,
    "node_get_fsm_siblings_100": G,

    "memory_processes_used": G,

    # Get/put FSM queues
    "node_get_fsm_active": G,
    "node_get_fsm_active_60s": G,
    "node_get_fsm_in_rate": G,
    "node_get_fsm_out_rate": G,
    "node_get_fsm_rejected": G,
    "node_get_fsm_rejected_60s": G,
    "node_get_fsm_rejected_total": G,
    "node_put_fsm_active": G,
    "node_put_fsm_active_60s": G,
    "node_put_fsm_in_rate": G,
    "node_put_fsm_out_rate": G,
    "node_put_fsm_rejected": G,
    "node_put_fsm_rejected_60s": G,
    "node_put_fsm_rejected_total": G,

    # Index and list FSMs
    "index_fsm_create": G,
    "index_fsm_create_error": G,
    "index_fsm_active": G,
    "list_fsm_create": G,
    "list_fsm_create_error": G,
    "list_fsm_active": G,

    "sys_process_count": G,
    "coord_redirs_total": G,

    # Protocol buffers connections
    "pbc_connects": G,
    "pbc_active": G,
})


def format_value(value: Any) -> str:
    """Render a stats value with the generic string conversion.

    Ints render in decimal, floats as Python prints them, strings verbatim
    and a missing stat as ``None``.
    """
    return f"{value}"


def build_payload(lines: Iterable[str]) -> bytes:
    """Join encoded lines into a single datagram payload."""
    return "\n".join(lines).encode("utf-8")


class MetricEncoder:
    """
    Encodes a Riak status document as statsd lines.

    Every whitelisted metric produces exactly one line per call, whether or
    not the status document contains it. Line order follows the whitelist
    mapping and is not part of the contract.
    """

    def __init__(self, metric_types: Mapping[str, MetricType] = METRIC_TYPES):
        self.metric_types = MappingProxyType(dict(metric_types))

    def __len__(self) -> int:
        return len(self.metric_types)

    def encode(self, node_id: str, status: Mapping[str, Any]) -> list[str]:
        """Encode the whitelisted stats as ``<node>.<name>:<value>|<type>``."""
        return [
            f"{node_id}.{name}:{format_value(status.get(name))}|{metric_type.value}"
            for name, metric_type in self.metric_types.items()
        ]
