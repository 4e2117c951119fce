"""Metrics module."""

from .registry import (
    record_bind,
    record_command,
    record_connection_state,
    record_decode_error,
    record_foreign_datagram,
    record_packet_recv,
    record_packet_sent,
    record_poll,
    record_socket_retry,
    start_metrics_server,
)

__all__ = [
    "record_bind",
    "record_command",
    "record_connection_state",
    "record_decode_error",
    "record_foreign_datagram",
    "record_packet_recv",
    "record_packet_sent",
    "record_poll",
    "record_socket_retry",
    "start_metrics_server",
]
