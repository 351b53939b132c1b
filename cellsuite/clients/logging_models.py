from cellsuite.logging.models import Entry, LogLevel


class ClientDebug(Entry, kw_only=True):
    """Debug-level logging for requests made to platform components."""
    url: str
    status: int | None = None
    level: LogLevel = LogLevel.DEBUG


class ClientError(Entry, kw_only=True):
    """Error-level logging for rejected requests."""
    url: str
    status: int | None = None
    level: LogLevel = LogLevel.ERROR
