from cellsuite.logging.models import LogLevel


class LogLevelMap:
    """Severity order of log levels, lowest first."""

    _order = (
        LogLevel.TRACE,
        LogLevel.DEBUG,
        LogLevel.INFO,
        LogLevel.WARN,
        LogLevel.ERROR,
        LogLevel.CRITICAL,
    )

    def __init__(self) -> None:
        self._levels = {level: rank for rank, level in enumerate(self._order)}

    def __getitem__(self, level: LogLevel) -> int:
        return self._levels[level]
