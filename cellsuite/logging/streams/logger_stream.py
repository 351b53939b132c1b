import asyncio
import io
import os
import pathlib
import sys
from typing import Callable, TypeVar

import msgspec

from cellsuite.logging.config.logging_config import LoggingConfig
from cellsuite.logging.config.stream_type import StreamType
from cellsuite.logging.models import Entry, Log

T = TypeVar("T", bound=Entry)


DEFAULT_TEMPLATE = "{timestamp} - {level} - {stream} - {function_name}:{line_number} - {message}"


class LoggerStream:
    def __init__(
        self,
        name: str,
        filename: str | None = None,
        template: str | None = None,
    ) -> None:
        if filename is not None and pathlib.Path(filename).suffix != ".json":
            raise ValueError(
                f"Err. - log file {filename} must be a .json file"
            )

        self.name = name
        self.filename = filename
        self.template = template or DEFAULT_TEMPLATE

        self._config = LoggingConfig()
        self._file: io.BufferedWriter | None = None
        self._file_lock = asyncio.Lock()
        self._closed = False

    @property
    def logfile_path(self) -> str | None:
        if self.filename is None:
            return None

        return os.path.join(
            self._config.directory or os.getcwd(),
            self.filename,
        )

    async def write(
        self,
        log: Log[T],
        filter: Callable[[T], bool] | None = None,
    ):
        if self._closed:
            return

        if not self._config.enabled(self.name, log.entry.level):
            return

        if filter and filter(log.entry) is False:
            return

        loop = asyncio.get_running_loop()

        await loop.run_in_executor(
            None,
            self._write_line,
            self.format(log),
        )

        if self.filename is not None:
            async with self._file_lock:
                await loop.run_in_executor(
                    None,
                    self._append_json,
                    msgspec.json.encode(log) + b"\n",
                )

    def format(self, log: Log[T]) -> str:
        line = log.entry.to_template(
            self.template,
            context={
                "stream": self.name,
                "filename": log.filename,
                "function_name": log.function_name,
                "line_number": log.line_number,
                "thread_id": log.thread_id,
                "timestamp": log.timestamp,
            },
        )

        # Per-module context (component, pid, probe, ...) trails the message.
        context_fields = log.entry.fields()
        if context_fields:
            line = f"{line} - " + " ".join(
                f"{field}={value}" for field, value in context_fields.items()
            )

        return line

    def _write_line(self, line: str):
        stream = sys.stdout if self._config.output == StreamType.STDOUT else sys.stderr
        if stream.closed:
            return

        stream.write(line + "\n")
        stream.flush()

    def _append_json(self, data: bytes):
        if self._file is None or self._file.closed:
            path = pathlib.Path(self.logfile_path).absolute()
            path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(path, "ab")

        self._file.write(data)
        self._file.flush()

    async def close(self):
        self._closed = True

        async with self._file_lock:
            if self._file is not None and not self._file.closed:
                await asyncio.get_running_loop().run_in_executor(
                    None,
                    self._file.close,
                )

            self._file = None
