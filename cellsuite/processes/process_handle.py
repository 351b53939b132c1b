"""
Supervision of a single orchestrated component.

A ProcessHandle owns one OS process started in its own session, so signals
reach the component and anything it forks. Two background tasks run for the
lifetime of the process: one scans combined stdout/stderr (feeding the
readiness check and the bounded output tail), the other observes the exit.
HealthCheck readiness adds a third task that polls until the first success.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections import deque

from cellsuite.errors import (
    ProcessExitedError,
    SignalDeliveryError,
    StartupError,
    StartupTimeoutError,
)
from cellsuite.logging import Logger

from .logging_models import (
    ProcessDebug,
    ProcessError,
    ProcessInfo,
    ProcessTrace,
    ProcessWarning,
)
from .models import ComponentSpec, ProcessStatus, SignalKind


class ProcessHandle:

    def __init__(
        self,
        spec: ComponentSpec,
        startup_timeout: float = 30.0,
        grace_period: float = 5.0,
        kill_timeout: float = 5.0,
        output_lines: int = 500,
        exit_poll_interval: float = 0.05,
        logger: Logger | None = None,
    ) -> None:
        self.spec = spec
        self.status = ProcessStatus.CREATED

        self._startup_timeout = spec.startup_timeout or startup_timeout
        self._grace_period = grace_period
        self._kill_timeout = kill_timeout
        self._exit_poll_interval = exit_poll_interval
        self._logger = logger or Logger()

        self._process: asyncio.subprocess.Process | None = None
        self._exit_code: int | None = None
        self._started_at: float | None = None
        self._exited_at: float | None = None
        self._last_health_error: BaseException | None = None

        self._ready = asyncio.Event()
        self._exited = asyncio.Event()
        self._output: deque[str] = deque(maxlen=output_lines)

        self._output_task: asyncio.Task | None = None
        self._exit_task: asyncio.Task | None = None
        self._health_task: asyncio.Task | None = None

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def pid(self) -> int | None:
        if self._process is None:
            return None

        return self._process.pid

    @property
    def exit_code(self) -> int | None:
        return self._exit_code

    @property
    def exited(self) -> bool:
        return self._exited.is_set()

    @property
    def exited_at(self) -> float | None:
        return self._exited_at

    @property
    def output(self) -> list[str]:
        return list(self._output)

    async def __aenter__(self) -> ProcessHandle:
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.stop()

    # =========================================================================
    # Startup
    # =========================================================================

    async def start(self) -> ProcessHandle:
        if self.status != ProcessStatus.CREATED:
            raise RuntimeError(
                f"Err. - component {self.name} has already been started"
            )

        self.status = ProcessStatus.STARTING

        env = dict(os.environ)
        env.update(self.spec.env)

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.spec.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                env=env,
                cwd=self.spec.working_directory,
                start_new_session=True,
                limit=2**20,
            )

        except OSError as err:
            self._mark_exited(None)
            await self._log_error(f"Could not launch {self.spec.executable} - {err}")
            raise StartupError(
                self.name,
                f"could not launch {self.spec.executable} - {err}",
            ) from err

        self._started_at = time.monotonic()
        await self._log_debug(f"Spawned {' '.join(self.spec.command)}")

        self._output_task = asyncio.create_task(self._scan_output())
        self._exit_task = asyncio.create_task(self._watch_exit())

        readiness = self.spec.readiness
        if readiness.immediate:
            self._mark_ready()

        elif readiness.polls:
            self._health_task = asyncio.create_task(self._poll_health())

        ready_waiter = asyncio.create_task(self._ready.wait())
        exit_waiter = asyncio.create_task(self._exited.wait())

        try:
            await asyncio.wait(
                [ready_waiter, exit_waiter],
                timeout=self._startup_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )

        finally:
            for waiter in (ready_waiter, exit_waiter):
                if not waiter.done():
                    waiter.cancel()

        if self._ready.is_set():
            if not self.exited:
                self.status = ProcessStatus.RUNNING

            await self._log_info(
                f"Ready after {time.monotonic() - self._started_at:.2f}s ({readiness.describe()})"
            )
            return self

        if self.exited:
            self._reap_session()
            await self._shutdown_background()

            await self._log_error(f"Exited with code {self._exit_code} before becoming ready")
            raise ProcessExitedError(
                self.name,
                self._exit_code,
                output=self.output,
            )

        await self._log_error(
            f"Not ready after {self._startup_timeout:.2f}s waiting for {readiness.describe()}, killing"
        )

        self._deliver(SignalKind.KILL)
        try:
            await self.wait(timeout=self._kill_timeout)

        except asyncio.TimeoutError:
            await self._log_error("Did not exit after KILL")

        self._reap_session()
        await self._shutdown_background()

        raise StartupTimeoutError(
            self.name,
            self._startup_timeout,
            output=self.output,
            last_error=self._last_health_error,
        )

    def _mark_ready(self):
        if self._ready.is_set():
            return

        if self.status == ProcessStatus.STARTING:
            self.status = ProcessStatus.READY

        self._ready.set()

    def _mark_exited(self, exit_code: int | None):
        self._exit_code = exit_code
        self._exited_at = time.monotonic()
        self.status = ProcessStatus.EXITED
        self._exited.set()

    async def _scan_output(self):
        stream = self._process.stdout
        readiness = self.spec.readiness

        while True:
            raw = await stream.readline()
            if not raw:
                return

            line = raw.decode(errors="replace").rstrip("\r\n")
            self._output.append(line)

            await self._logger.log(
                ProcessTrace(
                    message=line,
                    component=self.name,
                    pid=self.pid,
                )
            )

            if not self._ready.is_set() and readiness.observe(line):
                self._mark_ready()

    async def _watch_exit(self):
        # returncode is set once the child is reaped, while Process.wait()
        # also waits for pipes a forked grandchild may still hold open.
        while self._process.returncode is None:
            await asyncio.sleep(self._exit_poll_interval)

        self._mark_exited(self._process.returncode)
        await self._log_info(f"Exited with code {self._exit_code}")

    async def _poll_health(self):
        readiness = self.spec.readiness

        while not self._ready.is_set() and not self.exited:
            try:
                healthy = await readiness.check()
                self._last_health_error = None

                if healthy:
                    self._mark_ready()
                    return

            except Exception as err:
                self._last_health_error = err

            await asyncio.sleep(readiness.interval)

    async def _drain_output(self, timeout: float = 1.0):
        if self._output_task is None or self._output_task.done():
            return

        await asyncio.wait([self._output_task], timeout=timeout)

    # =========================================================================
    # Waiting and signaling
    # =========================================================================

    async def wait(self, timeout: float | None = None) -> int | None:
        if self._process is None and not self.exited:
            raise RuntimeError(
                f"Err. - component {self.name} has not been started"
            )

        await asyncio.wait_for(self._exited.wait(), timeout=timeout)
        return self._exit_code

    def signal(self, kind: SignalKind) -> bool:
        """
        Deliver ``kind`` to the component's process group.

        Returns False without raising when the process has already exited
        or vanished. Any other OS failure raises SignalDeliveryError.
        """
        if self._process is None or self.exited:
            return False

        try:
            os.killpg(self._process.pid, kind.value)

        except ProcessLookupError:
            return False

        except OSError as err:
            raise SignalDeliveryError(self.name, kind.name, err) from err

        if kind != SignalKind.KILL and self.status == ProcessStatus.RUNNING:
            self.status = ProcessStatus.STOPPING

        return True

    def _deliver(self, kind: SignalKind) -> bool:
        try:
            return self.signal(kind)

        except SignalDeliveryError:
            return False

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def stop(self, grace_period: float | None = None) -> int | None:
        if grace_period is None:
            grace_period = self._grace_period

        if self._process is None:
            return self._exit_code

        if not self.exited:
            self.status = ProcessStatus.STOPPING
            await self._log_debug(f"Interrupting with {grace_period:.2f}s grace period")

            try:
                self.signal(SignalKind.INTERRUPT)

            except SignalDeliveryError as err:
                await self._log_error(str(err))

            try:
                await self.wait(timeout=grace_period)

            except asyncio.TimeoutError:
                await self._log_warning(
                    f"Still running after {grace_period:.2f}s grace period, killing"
                )

                try:
                    self.signal(SignalKind.KILL)

                except SignalDeliveryError as err:
                    await self._log_error(str(err))

                try:
                    await self.wait(timeout=self._kill_timeout)

                except asyncio.TimeoutError:
                    await self._log_error(
                        f"Did not exit within {self._kill_timeout:.2f}s of KILL"
                    )

        self._reap_session()
        await self._shutdown_background()

        return self._exit_code

    def _reap_session(self):
        # Leftover members of the session (e.g. plugin children) outlive the
        # leader unless killed explicitly. The kernel keeps the leader's pid
        # reserved while its group has members, so once the leader is reaped a
        # live process under that pid means the pid was reused and the group
        # is empty.
        if self.exited and _pid_in_use(self._process.pid):
            return

        try:
            os.killpg(self._process.pid, SignalKind.KILL.value)

        except (ProcessLookupError, PermissionError):
            pass

    async def _shutdown_background(self):
        if self.exited:
            await self._drain_output()

        tasks = [
            task
            for task in (self._health_task, self._exit_task, self._output_task)
            if task is not None and not task.done()
        ]

        for task in tasks:
            task.cancel()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # =========================================================================
    # Logging
    # =========================================================================

    def _get_log_context(self) -> dict:
        return {
            "component": self.name,
            "pid": self.pid,
        }

    async def _log_debug(self, message: str) -> None:
        await self._logger.log(ProcessDebug(message=message, **self._get_log_context()))

    async def _log_info(self, message: str) -> None:
        await self._logger.log(ProcessInfo(message=message, **self._get_log_context()))

    async def _log_warning(self, message: str) -> None:
        await self._logger.log(ProcessWarning(message=message, **self._get_log_context()))

    async def _log_error(self, message: str) -> None:
        await self._logger.log(ProcessError(message=message, **self._get_log_context()))

    def __repr__(self) -> str:
        return (
            f"ProcessHandle(name={self.name!r}, pid={self.pid}, "
            f"status={self.status.value}, exit_code={self._exit_code})"
        )


def _pid_in_use(pid: int) -> bool:
    try:
        os.kill(pid, 0)

    except ProcessLookupError:
        return False

    except PermissionError:
        return True

    return True
