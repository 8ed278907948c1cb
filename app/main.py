import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from app.config import ServerConfig
from app.errors import ScanProxyError
from app.ingest import BodySizeLimitMiddleware
from app.logging_config import setup_logging
from app.routers import scan

logger = logging.getLogger("clamav_rest_proxy")


async def scan_proxy_error_handler(request: Request, exc: ScanProxyError) -> PlainTextResponse:
    # Errors are plain text, successful scans are JSON.
    logger.debug("Responding %s to %s: %s", exc.status_code, request.url.path, exc)
    return PlainTextResponse(exc.public_message, status_code=exc.status_code)


def create_app(config: ServerConfig | None = None) -> FastAPI:
    config = config or ServerConfig.from_env()

    # Only /scan is exposed, no docs or schema routes.
    application = FastAPI(
        title="ClamAV REST Proxy",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    application.state.config = config
    application.add_middleware(BodySizeLimitMiddleware, max_body_size=config.max_body_size_bytes)
    application.add_exception_handler(ScanProxyError, scan_proxy_error_handler)
    application.include_router(scan.router)
    return application


app = create_app()


def run() -> None:
    config: ServerConfig = app.state.config
    setup_logging(config.log_level)
    logger.info("Using ClamAV at %s", config.clamav_upstream)
    logger.debug("Listening on %s:%s", config.host, config.port)
    uvicorn.run(app, host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    run()
