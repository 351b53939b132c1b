from __future__ import annotations

import asyncio

from cellsuite.errors import BackendCommandError
from cellsuite.logging import Logger

from .logging_models import ClusterError, ClusterInfo


UNKNOWN_HANDLE = "unknown handle"


class BackendCleaner:
    """
    Deletes every container the backend plugin still knows about.

    Deletions that fail because the container is already gone are
    ignored; every other failure is collected and returned so teardown
    can report them without stopping.
    """

    def __init__(
        self,
        plugin: str,
        global_flags: list[str] | None = None,
        timeout: float = 30.0,
        logger: Logger | None = None,
    ) -> None:
        self.plugin = plugin
        self.global_flags = list(global_flags or [])
        self._timeout = timeout
        self._logger = logger or Logger()

    async def list_handles(self) -> list[str]:
        command, exit_code, output = await self._run("list")
        if exit_code != 0:
            raise BackendCommandError(command, exit_code, output)

        return [line.strip() for line in output.splitlines() if line.strip()]

    async def cleanup(self) -> list[BackendCommandError]:
        handles = await self.list_handles()

        await self._logger.log(
            ClusterInfo(
                message=f"Cleaning up {len(handles)} backend containers",
                component=self.plugin,
            )
        )

        errors: list[BackendCommandError] = []
        for handle in handles:
            command, exit_code, output = await self._run("delete", handle)

            if exit_code == 0 or UNKNOWN_HANDLE in output:
                continue

            error = BackendCommandError(command, exit_code, output)
            errors.append(error)

            await self._logger.log(
                ClusterError(
                    message=str(error),
                    component=self.plugin,
                )
            )

        return errors

    async def _run(self, *args: str) -> tuple[list[str], int | None, str]:
        command = [self.plugin, *self.global_flags, *args]

        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )

        try:
            stdout, _ = await asyncio.wait_for(
                process.communicate(),
                timeout=self._timeout,
            )

        except asyncio.TimeoutError:
            process.kill()
            await process.wait()

            return command, None, f"timed out after {self._timeout}s"

        return command, process.returncode, stdout.decode(errors="replace")
