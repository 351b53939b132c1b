from cellsuite.logging.models import Entry, LogLevel


class ClusterInfo(Entry, kw_only=True):
    """Info-level logging for backend cleanup."""
    component: str
    level: LogLevel = LogLevel.INFO


class ClusterError(Entry, kw_only=True):
    """Error-level logging for failed backend cleanup commands."""
    component: str
    level: LogLevel = LogLevel.ERROR
