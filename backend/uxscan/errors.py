"""
Scan failure taxonomy.

Each error carries the HTTP status the API answers with. MalformedAuditResponse
never reaches a caller: the normalizer swaps in the fallback record instead.
"""


class ScanError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class InvalidInput(ScanError):
    """Missing or malformed request input. Raised before any browser work."""
    status_code = 400


class ScanAborted(ScanError):
    """The client went away while the scan was running."""
    # nginx-style "Client Closed Request"
    status_code = 499

    def __init__(self, message: str = "Scan Aborted"):
        super().__init__(message)


class NavigationFailed(ScanError):
    """DNS, TLS, timeout or any other page load failure."""


class NoFramesCaptured(ScanError):
    def __init__(self, message: str = "No screenshots captured"):
        super().__init__(message)


class AuditServiceUnavailable(ScanError):
    """The Gemini call itself failed."""


class MalformedAuditResponse(ScanError):
    pass
