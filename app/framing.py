from typing import Iterator
import struct

DEFAULT_CHUNK_SIZE = 8192
TERMINATOR = struct.pack(">I", 0)


def encode_frame(chunk: bytes) -> bytes:
    """Prefix a non-empty chunk with its 4-byte big-endian length."""
    if not chunk:
        raise ValueError("Empty chunks are reserved for the stream terminator")
    return struct.pack(">I", len(chunk)) + bytes(chunk)


def iter_frames(payload: bytes, max_chunk_size: int | None = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """
    Split a payload into INSTREAM frames.

    Yields one length-prefixed frame per window of at most ``max_chunk_size``
    bytes, in payload order, followed by exactly one zero-length terminator.
    An empty payload yields only the terminator.
    """
    size = DEFAULT_CHUNK_SIZE if max_chunk_size is None else max_chunk_size
    if size < 1:
        raise ValueError(f"max_chunk_size must be positive, got {size}")
    return _frames(memoryview(payload), size)


def _frames(view: memoryview, size: int) -> Iterator[bytes]:
    for offset in range(0, len(view), size):
        yield encode_frame(view[offset : offset + size])
    yield TERMINATOR
