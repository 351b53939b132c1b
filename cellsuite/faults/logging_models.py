from cellsuite.logging.models import Entry, LogLevel


class FaultDebug(Entry, kw_only=True):
    """Debug-level logging for shim decisions."""
    shim: str
    level: LogLevel = LogLevel.DEBUG


class FaultInfo(Entry, kw_only=True):
    """Info-level logging for installed shims and injected delays."""
    shim: str
    level: LogLevel = LogLevel.INFO


class FaultError(Entry, kw_only=True):
    """Error-level logging for decision server failures."""
    shim: str
    level: LogLevel = LogLevel.ERROR
