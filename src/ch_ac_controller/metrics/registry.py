"""Prometheus metrics registry for AC device communication."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    start_http_server,
)

# Mirrors transport.types.ConnectionState values
CONNECTION_STATES: Final = ("idle", "awaiting_identity", "identified", "awaiting_bind_ack", "bound")

# Packet metrics
chac_packet_sent_total: Final = Counter(  # type: ignore[assignment]
    "chac_packet_sent_total",
    "Total datagrams sent to devices",
    ["host", "packet_type", "outcome"],
)

chac_packet_recv_total: Final = Counter(  # type: ignore[assignment]
    "chac_packet_recv_total",
    "Total datagrams received from devices",
    ["host", "packet_type", "outcome"],
)

chac_decode_errors_total: Final = Counter(  # type: ignore[assignment]
    "chac_decode_errors_total",
    "Total datagrams that could not be decrypted or parsed",
    ["host", "reason"],
)

chac_foreign_datagram_total: Final = Counter(  # type: ignore[assignment]
    "chac_foreign_datagram_total",
    "Total datagrams dropped because they came from an unexpected sender",
    ["host"],
)

# Connection metrics
chac_connection_state: Final = Gauge(  # type: ignore[assignment]
    "chac_connection_state",
    "Current engine state (1 for the active state)",
    ["host", "state"],
)

chac_bind_total: Final = Counter(  # type: ignore[assignment]
    "chac_bind_total",
    "Total bind handshakes",
    ["host", "outcome"],
)

chac_socket_retry_total: Final = Counter(  # type: ignore[assignment]
    "chac_socket_retry_total",
    "Total scheduled restarts after a transport failure",
    ["host", "reason"],
)

# Device operation metrics
chac_poll_total: Final = Counter(  # type: ignore[assignment]
    "chac_poll_total",
    "Total status requests issued by the poller",
    ["host"],
)

chac_command_total: Final = Counter(  # type: ignore[assignment]
    "chac_command_total",
    "Total parameter commands",
    ["host", "outcome"],
)

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9400) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_packet_sent(host: str, packet_type: str, outcome: str) -> None:
    """Record a sent datagram."""
    chac_packet_sent_total.labels(host=host, packet_type=packet_type, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_packet_recv(host: str, packet_type: str, outcome: str) -> None:
    """Record a received datagram."""
    chac_packet_recv_total.labels(host=host, packet_type=packet_type, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_decode_error(host: str, reason: str) -> None:
    """Record a decode error."""
    chac_decode_errors_total.labels(host=host, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_foreign_datagram(host: str) -> None:
    chac_foreign_datagram_total.labels(host=host).inc()  # type: ignore[no-untyped-call]


def record_connection_state(host: str, state: str) -> None:
    """Record connection state change."""
    # Set gauge to 1 for current state, 0 for all others
    for s in CONNECTION_STATES:
        value = 1 if s == state else 0
        chac_connection_state.labels(host=host, state=s).set(value)  # type: ignore[no-untyped-call]


def record_bind(host: str, outcome: str) -> None:
    """Record a bind handshake outcome."""
    chac_bind_total.labels(host=host, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_socket_retry(host: str, reason: str) -> None:
    chac_socket_retry_total.labels(host=host, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_poll(host: str) -> None:
    chac_poll_total.labels(host=host).inc()  # type: ignore[no-untyped-call]


def record_command(host: str, outcome: str) -> None:
    """Record a parameter command outcome."""
    chac_command_total.labels(host=host, outcome=outcome).inc()  # type: ignore[no-untyped-call]
