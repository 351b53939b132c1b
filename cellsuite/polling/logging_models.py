from cellsuite.logging.models import Entry, LogLevel


class PollingDebug(Entry, kw_only=True):
    """Debug-level logging for individual polling samples."""
    probe: str
    attempt: int
    elapsed: float
    level: LogLevel = LogLevel.DEBUG


class PollingInfo(Entry, kw_only=True):
    """Info-level logging for satisfied polling assertions."""
    probe: str
    attempt: int
    elapsed: float
    level: LogLevel = LogLevel.INFO


class PollingError(Entry, kw_only=True):
    """Error-level logging for timed-out or violated polling assertions."""
    probe: str
    attempt: int
    elapsed: float
    level: LogLevel = LogLevel.ERROR
