"""
Error taxonomy for the scan proxy.

Errors that reach the HTTP boundary carry a status code and a short public
message. The exception text itself is for logs only.
"""


class ScanProxyError(Exception):
    status_code: int = 500
    public_message: str = "Internal server error"


class ClientInputError(ScanProxyError):
    status_code = 400
    public_message = "Missing multipart file"


class PayloadTooLargeError(ClientInputError):
    status_code = 413
    public_message = "Request body too large"


class ClamdError(ScanProxyError):
    """Raised by the transport; never surfaced to clients directly."""


class ClamdConnectionError(ClamdError):
    pass


class ClamdTransportError(ClamdError):
    pass


class ScannerUnavailableError(ScanProxyError):
    status_code = 500
    public_message = "Failed connecting to clamav"


class ScanFailedError(ScanProxyError):
    status_code = 500
    public_message = "Failed scanning file"
