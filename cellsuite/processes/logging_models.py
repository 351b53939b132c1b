"""
Logging models for process supervision.

Every model names the component and, once spawned, its pid so the output
of a failing test can be correlated with the OS process table.
"""

from cellsuite.logging.models import Entry, LogLevel


class ProcessTrace(Entry, kw_only=True):
    """Trace-level logging for component output lines."""
    component: str
    pid: int | None = None
    level: LogLevel = LogLevel.TRACE


class ProcessDebug(Entry, kw_only=True):
    """Debug-level logging for ProcessHandle lifecycle steps."""
    component: str
    pid: int | None = None
    level: LogLevel = LogLevel.DEBUG


class ProcessInfo(Entry, kw_only=True):
    """Info-level logging for ProcessHandle lifecycle transitions."""
    component: str
    pid: int | None = None
    level: LogLevel = LogLevel.INFO


class ProcessWarning(Entry, kw_only=True):
    """Warning-level logging for escalations during shutdown."""
    component: str
    pid: int | None = None
    level: LogLevel = LogLevel.WARN


class ProcessError(Entry, kw_only=True):
    """Error-level logging for failed startups and signal delivery."""
    component: str
    pid: int | None = None
    level: LogLevel = LogLevel.ERROR


class GroupInfo(Entry, kw_only=True):
    """Info-level logging for ProcessGroup transitions."""
    group: str
    members: list[str]
    level: LogLevel = LogLevel.INFO


class GroupError(Entry, kw_only=True):
    """Error-level logging for ProcessGroup failures."""
    group: str
    members: list[str]
    level: LogLevel = LogLevel.ERROR
