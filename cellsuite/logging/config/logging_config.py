from __future__ import annotations

import contextvars
from typing import TYPE_CHECKING, Literal

from cellsuite.logging.models import LogLevel, LogLevelName

from .log_level_map import LogLevelMap
from .stream_type import StreamType

if TYPE_CHECKING:
    from cellsuite.env import Env


LogOutput = Literal["stdout", "stderr"]

_log_level = contextvars.ContextVar("_log_level", default=LogLevel.INFO)
_log_output = contextvars.ContextVar("_log_output", default=StreamType.STDERR)
_log_directory = contextvars.ContextVar("_log_directory", default=None)
_disabled_streams = contextvars.ContextVar("_disabled_streams", default=())


class LoggingConfig:
    """
    View over the context-local logging settings. Every instance reads and
    writes the same context variables, so a level set by a fixture applies
    to each stream created afterwards in that context.
    """

    def __init__(self) -> None:
        self._level_map = LogLevelMap()

    def update(
        self,
        log_directory: str | None = None,
        log_level: LogLevelName | None = None,
        log_output: LogOutput | None = None,
    ):
        if log_directory:
            _log_directory.set(log_directory)

        if log_level:
            _log_level.set(LogLevel.to_level(log_level))

        if log_output:
            _log_output.set(
                StreamType.STDOUT if log_output == "stdout" else StreamType.STDERR
            )

    def disable(self, stream_name: str):
        disabled = _disabled_streams.get()
        if stream_name not in disabled:
            _disabled_streams.set((*disabled, stream_name))

    def enable(self, stream_name: str):
        _disabled_streams.set(
            tuple(name for name in _disabled_streams.get() if name != stream_name)
        )

    def enabled(self, stream_name: str, log_level: LogLevel) -> bool:
        if stream_name in _disabled_streams.get():
            return False

        return self._level_map[log_level] >= self._level_map[_log_level.get()]

    @property
    def level(self) -> LogLevel:
        return _log_level.get()

    @property
    def output(self) -> StreamType:
        return _log_output.get()

    @property
    def directory(self) -> str | None:
        return _log_directory.get()


def configure_logging(env: Env) -> LoggingConfig:
    config = LoggingConfig()
    config.update(
        log_directory=env.CELLSUITE_LOGS_DIRECTORY,
        log_level=env.CELLSUITE_LOG_LEVEL,
        log_output=env.CELLSUITE_LOG_OUTPUT,
    )

    return config
