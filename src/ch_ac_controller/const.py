import os

from ch_ac_controller import __version__

__all__ = [
    "CHAC_APP_CID",
    "CHAC_BIND_RETRY_DELAY",
    "CHAC_DEBUG",
    "CHAC_DEFAULT_KEY",
    "CHAC_DEVICE_PORT",
    "CHAC_KEY_LENGTH",
    "CHAC_LOCAL_PORT_BASE",
    "CHAC_LOG_CORRELATION_ENABLED",
    "CHAC_LOG_FORMAT",
    "CHAC_LOG_HUMAN_OUTPUT",
    "CHAC_LOG_JSON_FILE",
    "CHAC_METRICS_PORT",
    "CHAC_UPDATE_INTERVAL",
    "CHAC_VERSION",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
CHAC_VERSION: str = __version__

# Wire protocol constants
# Well-known AES key every unit accepts before a session key has been issued.
CHAC_DEFAULT_KEY: bytes = b"a3K8Bx%2r8Y7#xDh"
CHAC_KEY_LENGTH: int = 16
CHAC_APP_CID: str = "app"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        value = float(raw)
    except (ValueError, TypeError):
        return default
    return value if value > 0 else default


CHAC_DEVICE_PORT: int = _env_int("CHAC_DEVICE_PORT", 7000)
# Local port is LOCAL_PORT_BASE + last octet of the device IP unless overridden
CHAC_LOCAL_PORT_BASE: int = _env_int("CHAC_LOCAL_PORT_BASE", 8000)
CHAC_UPDATE_INTERVAL: float = _env_float("CHAC_UPDATE_INTERVAL", 10.0)
CHAC_BIND_RETRY_DELAY: float = _env_float("CHAC_BIND_RETRY_DELAY", 5.0)
CHAC_METRICS_PORT: int = _env_int("CHAC_METRICS_PORT", 9400)

CHAC_DEBUG = os.environ.get("CHAC_DEBUG", "0").casefold() in YES_ANSWER

# Logging Configuration
CHAC_LOG_FORMAT: str = os.environ.get("CHAC_LOG_FORMAT", "both")  # "json", "human", or "both"
CHAC_LOG_JSON_FILE: str = os.environ.get("CHAC_LOG_JSON_FILE", "")  # empty disables JSON file output
CHAC_LOG_HUMAN_OUTPUT: str = os.environ.get("CHAC_LOG_HUMAN_OUTPUT", "stdout")  # "stdout", "stderr", or file path
CHAC_LOG_CORRELATION_ENABLED: bool = (
    os.environ.get("CHAC_LOG_CORRELATION_ENABLED", "true").casefold() in YES_ANSWER
)
