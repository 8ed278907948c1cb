import logging

from fastapi import Request
from starlette.datastructures import Headers, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.errors import ClientInputError, PayloadTooLargeError

logger = logging.getLogger("clamav_rest_proxy.ingest")


class BodySizeLimitMiddleware:
    """
    Reject request bodies larger than ``max_body_size`` (ASGI-style).

    A declared Content-Length over the limit is answered with 413 before the
    app runs. Bodies without a usable Content-Length are counted as they are
    received and the read fails with PayloadTooLargeError once they pass the
    limit.
    """

    def __init__(self, app: ASGIApp, max_body_size: int):
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_body_size:
            logger.warning(
                "Rejected request body of %s bytes (limit %d)", content_length, self.max_body_size
            )
            response = PlainTextResponse(PayloadTooLargeError.public_message, status_code=413)
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_size:
                    raise PayloadTooLargeError(
                        f"request body exceeded {self.max_body_size} bytes while streaming"
                    )
            return message

        await self.app(scope, limited_receive, send)


async def extract_upload(request: Request) -> bytes:
    """Read the first multipart file field to completion. Other fields are ignored."""
    try:
        async with request.form() as form:
            upload = next(
                (value for _name, value in form.multi_items() if isinstance(value, UploadFile)),
                None,
            )
            if upload is None:
                logger.warning("Got a request without a file field")
                raise ClientInputError("no multipart file field in request")

            logger.info("Scanning %r", upload.filename)
            return await upload.read()
    except (MultiPartException, StarletteHTTPException) as exc:
        logger.warning("Got an unreadable multipart body: %s", getattr(exc, "detail", exc))
        raise ClientInputError(f"unreadable multipart body: {exc}") from exc
    except OSError as exc:
        logger.warning("Failed reading multipart field: %s", exc)
        raise ClientInputError(f"failed reading multipart field: {exc}") from exc
