"""Riak statsd relay."""

__version__ = "1.0.0"
