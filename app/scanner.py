import asyncio
import logging

from app.classifier import classify
from app.clamd import instream
from app.config import ClamdAddress
from app.errors import ClamdConnectionError, ClamdTransportError, ScannerUnavailableError
from app.framing import DEFAULT_CHUNK_SIZE
from app.models import DaemonError, ScanInfected, ScanOutcome

logger = logging.getLogger("clamav_rest_proxy.scanner")


async def scan_bytes(
    address: ClamdAddress,
    payload: bytes,
    max_chunk_size: int = DEFAULT_CHUNK_SIZE,
    timeout: float | None = None,
) -> ScanOutcome:
    """
    Scan a payload against clamd and classify the reply.

    Infected results and daemon error replies are returned as outcomes.
    Failing to reach the daemon, or losing it mid-stream, raises
    ScannerUnavailableError; the underlying detail is only logged.
    """
    try:
        if timeout:
            line = await asyncio.wait_for(instream(address, payload, max_chunk_size), timeout)
        else:
            line = await instream(address, payload, max_chunk_size)
    except ClamdConnectionError as exc:
        logger.error("Received a ClamAV connection error: %s", exc)
        raise ScannerUnavailableError(str(exc)) from exc
    except ClamdTransportError as exc:
        logger.error("ClamAV connection failed mid-scan: %s", exc)
        raise ScannerUnavailableError(str(exc)) from exc
    except asyncio.TimeoutError as exc:
        logger.error("ClamAV scan timed out after %ss (upstream=%s)", timeout, address)
        raise ScannerUnavailableError(f"scan timed out after {timeout}s") from exc

    outcome = classify(line)
    if isinstance(outcome, ScanInfected):
        logger.warning("DETECTION: Found %s", ",".join(outcome.signatures))
    elif isinstance(outcome, DaemonError):
        logger.warning("ClamAV returned an unusable reply (%s): %r", outcome.reason, outcome.raw)
    return outcome
