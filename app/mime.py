import logging

import filetype

logger = logging.getLogger("clamav_rest_proxy.mime")


def guess_mime_type(payload: bytes) -> str | None:
    """Best-effort MIME type from magic bytes; None when unrecognized."""
    if not payload:
        return None
    mime = filetype.guess_mime(payload)
    if mime is None:
        logger.debug("No MIME type detected for %d byte payload", len(payload))
    return mime
