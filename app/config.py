from dataclasses import dataclass
from typing import NamedTuple
import os

from app.framing import DEFAULT_CHUNK_SIZE

DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_UPSTREAM = "localhost:3310"
DEFAULT_CLAMD_PORT = 3310
DEFAULT_MAX_BODY_SIZE_BYTES = 100 * 1024 * 1024


class ClamdAddress(NamedTuple):
    host: str
    port: int

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def parse_upstream(value: str) -> ClamdAddress:
    """Parse ``host:port`` (or ``[v6]:port``) into a daemon address."""
    raw = (value or "").strip()
    if not raw:
        raise ValueError("Couldn't parse CLAMAV_UPSTREAM: empty value")

    if raw.startswith("["):
        host, sep, rest = raw[1:].partition("]")
        if not sep or not host:
            raise ValueError(f"Couldn't parse CLAMAV_UPSTREAM: {value!r}")
        port_text = rest[1:] if rest.startswith(":") else rest
    elif raw.count(":") > 1:
        # Bare IPv6 literal without a port
        host, port_text = raw, ""
    else:
        host, _, port_text = raw.partition(":")

    if not host:
        raise ValueError(f"Couldn't parse CLAMAV_UPSTREAM: {value!r}")
    if not port_text:
        return ClamdAddress(host, DEFAULT_CLAMD_PORT)
    if not port_text.isdigit() or not 0 < int(port_text) < 65536:
        raise ValueError(f"Couldn't parse CLAMAV_UPSTREAM port: {value!r}")
    return ClamdAddress(host, int(port_text))


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
        return parsed if parsed > 0 else default
    except ValueError:
        return default


def _env_float(name: str) -> float | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        parsed = float(value)
    except ValueError:
        return None
    return parsed if parsed > 0 else None


@dataclass(frozen=True)
class ServerConfig:
    clamav_upstream: ClamdAddress = ClamdAddress("localhost", DEFAULT_CLAMD_PORT)
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    max_body_size_bytes: int = DEFAULT_MAX_BODY_SIZE_BYTES
    chunk_size: int = DEFAULT_CHUNK_SIZE
    scan_timeout_seconds: float | None = None
    log_level: str = "INFO"

    @staticmethod
    def from_env() -> "ServerConfig":
        return ServerConfig(
            clamav_upstream=parse_upstream(os.getenv("CLAMAV_UPSTREAM", DEFAULT_UPSTREAM)),
            host=os.getenv("HOST", DEFAULT_HOST),
            port=_env_int("PORT", DEFAULT_PORT),
            max_body_size_bytes=_env_int("MAX_BODY_SIZE_BYTES", DEFAULT_MAX_BODY_SIZE_BYTES),
            chunk_size=_env_int("CLAMAV_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            scan_timeout_seconds=_env_float("CLAMAV_TIMEOUT_SECONDS"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
