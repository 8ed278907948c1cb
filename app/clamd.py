import asyncio
import contextlib
import logging
from typing import Iterator

from app.config import ClamdAddress
from app.errors import ClamdConnectionError, ClamdTransportError
from app.framing import iter_frames

logger = logging.getLogger("clamav_rest_proxy.clamd")

INSTREAM_COMMAND = b"zINSTREAM\0"
REPLY_DELIMITERS = (b"\0", b"\n")
MAX_REPLY_BYTES = 16_384
READ_SIZE = 4096


def _decode_line(raw: bytes) -> str:
    return raw.decode("utf-8", "replace").strip("\r\n\0 ")


def _line_end(buf: bytearray) -> int:
    # Earliest delimiter of either kind, -1 if none yet
    hits = [idx for idx in (buf.find(delim) for delim in REPLY_DELIMITERS) if idx != -1]
    return min(hits) if hits else -1


async def _read_reply(reader: asyncio.StreamReader) -> str:
    buf = bytearray()
    terminated = False
    while len(buf) < MAX_REPLY_BYTES:
        try:
            chunk = await reader.read(READ_SIZE)
        except OSError as exc:
            raise ClamdTransportError(f"failed reading clamd reply: {exc}") from exc
        if not chunk:
            break
        buf.extend(chunk)
        end = _line_end(buf)
        if end != -1:
            del buf[end:]
            terminated = True
            break
    if not buf:
        raise ClamdTransportError("clamd closed the connection without replying")
    if len(buf) > MAX_REPLY_BYTES or (len(buf) == MAX_REPLY_BYTES and not terminated):
        logger.warning("clamd reply exceeded %d bytes, truncating", MAX_REPLY_BYTES)
        del buf[MAX_REPLY_BYTES:]
    return _decode_line(bytes(buf))


async def _send_stream(writer: asyncio.StreamWriter, frames: Iterator[bytes]) -> None:
    try:
        writer.write(INSTREAM_COMMAND)
        await writer.drain()
        for frame in frames:
            writer.write(frame)
            await writer.drain()
    except OSError as exc:
        raise ClamdTransportError(f"failed streaming to clamd: {exc}") from exc


async def instream(address: ClamdAddress, payload: bytes, max_chunk_size: int | None = None) -> str:
    """
    Stream a payload to clamd with INSTREAM and return the raw reply line.

    One connection per call. It is closed on every exit path, including
    cancellation of the awaiting task.
    """
    frames = iter_frames(payload, max_chunk_size)
    try:
        reader, writer = await asyncio.open_connection(address.host, address.port)
    except OSError as exc:
        raise ClamdConnectionError(f"failed to connect to clamd at {address}: {exc}") from exc

    logger.debug("Connected to clamd at %s, streaming %d bytes", address, len(payload))
    try:
        await _send_stream(writer, frames)
        return await _read_reply(reader)
    finally:
        writer.close()
        # Close errors are not scan errors
        with contextlib.suppress(OSError):
            await writer.wait_closed()
