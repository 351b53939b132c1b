from __future__ import annotations

import datetime
import sys
import threading
from typing import Callable, TypeVar

from cellsuite.logging.models import Entry, Log

from .logger_stream import LoggerStream

T = TypeVar("T", bound=Entry)


class Logger:
    """
    Async structured logger shared by every harness object in a run.

    Entries go to a named stream, ``cellsuite`` unless another is given.
    Streams are created on first use. A stream built with a ``filename``
    also appends each entry as a JSON line under the configured logs
    directory, which is how a scenario keeps a per-run record.
    """

    def __init__(
        self,
        name: str = "cellsuite",
        filename: str | None = None,
        template: str | None = None,
    ) -> None:
        self.name = name
        self._streams: dict[str, LoggerStream] = {
            name: LoggerStream(
                name=name,
                filename=filename,
                template=template,
            )
        }

    def stream(
        self,
        name: str,
        filename: str | None = None,
        template: str | None = None,
    ) -> LoggerStream:
        stream = self._streams.get(name)
        if stream is None:
            stream = LoggerStream(
                name=name,
                filename=filename,
                template=template,
            )
            self._streams[name] = stream

        return stream

    async def log(
        self,
        entry: T,
        name: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        frame = sys._getframe(1)
        code = frame.f_code

        await self.stream(name or self.name).write(
            Log(
                entry=entry,
                filename=code.co_filename,
                function_name=code.co_name,
                line_number=frame.f_lineno,
                thread_id=threading.get_native_id(),
                timestamp=datetime.datetime.now(datetime.UTC).isoformat(),
            ),
            filter=filter,
        )

    async def close(self):
        for stream in self._streams.values():
            await stream.close()
