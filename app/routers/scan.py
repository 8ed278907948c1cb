from fastapi import APIRouter, Depends, Request

from app.config import ServerConfig
from app.errors import ScanFailedError
from app.ingest import extract_upload
from app.mime import guess_mime_type
from app.models import DaemonError, ScanResponse
from app.scanner import scan_bytes

router = APIRouter(tags=["Scan"])


def get_server_config(request: Request) -> ServerConfig:
    return request.app.state.config


@router.post(
    "/scan",
    response_model=ScanResponse,
    summary="Scan one uploaded file with ClamAV",
)
async def scan(request: Request, config: ServerConfig = Depends(get_server_config)):
    """
    Streams the first multipart field to clamd and returns the verdict
    together with a MIME type guessed from the file's magic bytes.
    """
    payload = await extract_upload(request)

    outcome = await scan_bytes(
        config.clamav_upstream,
        payload,
        max_chunk_size=config.chunk_size,
        timeout=config.scan_timeout_seconds,
    )
    if isinstance(outcome, DaemonError):
        raise ScanFailedError(f"clamd replied {outcome.raw!r}")

    return ScanResponse.from_outcome(outcome, guess_mime_type(payload))
