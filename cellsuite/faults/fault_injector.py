from __future__ import annotations

import asyncio
import os
import pathlib
import shutil
import stat
import sys
import tempfile
import time
import uuid
from dataclasses import dataclass, field

import msgspec

from cellsuite.env import Env
from cellsuite.errors import FaultInjectionSetupError
from cellsuite.logging import Logger

from .fault_spec import FaultSpec
from .logging_models import FaultDebug, FaultError, FaultInfo
from .models import FaultRequest, FaultVerdict, Injection, ShimConfig
from .one_shot_latch import OneShotLatch


SHIM_TEMPLATE = """#!{executable}
import sys
sys.path.insert(0, {package_root!r})
from cellsuite.faults.shim import run_shim
run_shim({config_path!r}, sys.argv[1:])
"""


@dataclass(slots=True)
class ShimRegistration:
    shim_id: str
    shim_path: str
    target: str
    trace_path: str
    fault_spec: FaultSpec
    latch: OneShotLatch = field(default_factory=OneShotLatch)
    injections: list[Injection] = field(default_factory=list)


class FaultInjector:
    """
    Substitutes misbehaving stand-ins for real binaries.

    ``wrap`` writes an executable shim in front of a binary. Every shim
    invocation asks this injector's Unix-socket decision server for a
    verdict, so matching and the one-shot check happen in memory under a
    lock rather than through marker files on disk. The shim then execs the
    real binary with the original arguments.
    """

    def __init__(
        self,
        env: Env,
        logger: Logger | None = None,
    ) -> None:
        self._scratch_directory = env.CELLSUITE_SCRATCH_DIRECTORY
        self._logger = logger or Logger()

        self._directory: str | None = None
        self._socket_path: str | None = None
        self._server: asyncio.AbstractServer | None = None
        self._server_lock = asyncio.Lock()

        self._registrations: dict[str, ShimRegistration] = {}
        self._shims: dict[str, str] = {}

    @property
    def socket_path(self) -> str | None:
        return self._socket_path

    async def __aenter__(self) -> FaultInjector:
        await self._ensure_server()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def wrap(
        self,
        binary_path: str,
        fault_spec: FaultSpec,
    ) -> str:
        target = self._resolve_target(binary_path)

        await self._ensure_server()

        shim_id = uuid.uuid4().hex
        shim_path = os.path.join(
            self._directory,
            f"{os.path.basename(target)}-{shim_id[:8]}",
        )

        registration = ShimRegistration(
            shim_id=shim_id,
            shim_path=shim_path,
            target=target,
            trace_path=f"{shim_path}.trace",
            fault_spec=fault_spec,
        )

        config = ShimConfig(
            shim_id=shim_id,
            socket_path=self._socket_path,
            target=target,
            trace_path=registration.trace_path,
        )

        try:
            await asyncio.get_running_loop().run_in_executor(
                None,
                self._write_shim,
                shim_path,
                config,
            )

        except OSError as err:
            raise FaultInjectionSetupError(
                f"Err. - could not write shim for {target} - {err}"
            ) from err

        self._registrations[shim_id] = registration
        self._shims[shim_path] = shim_id

        await self._logger.log(
            FaultInfo(
                message=f"Wrapped {target} delaying {fault_spec.verb} by {fault_spec.delay_seconds}s",
                shim=shim_path,
            )
        )

        return shim_path

    def injections(self, shim_path: str) -> list[Injection]:
        return list(self._registration_for(shim_path).injections)

    def trace(self, shim_path: str) -> list[str]:
        trace_path = self._registration_for(shim_path).trace_path
        if not os.path.exists(trace_path):
            return []

        with open(trace_path) as trace_file:
            return trace_file.read().splitlines()

    def _registration_for(self, shim_path: str) -> ShimRegistration:
        shim_id = self._shims.get(shim_path)
        if shim_id is None:
            raise KeyError(f"Err. - no shim installed at {shim_path}")

        return self._registrations[shim_id]

    def _resolve_target(self, binary_path: str) -> str:
        target = binary_path
        if os.sep not in binary_path:
            target = shutil.which(binary_path) or binary_path

        target = os.path.abspath(target)

        if not os.path.isfile(target):
            raise FaultInjectionSetupError(
                f"Err. - cannot wrap {binary_path}, no such file"
            )

        if not os.access(target, os.X_OK):
            raise FaultInjectionSetupError(
                f"Err. - cannot wrap {binary_path}, file is not executable"
            )

        return target

    def _write_shim(self, shim_path: str, config: ShimConfig):
        config_path = f"{shim_path}.json"

        with open(config_path, "wb") as config_file:
            config_file.write(msgspec.json.encode(config))

        package_root = str(pathlib.Path(__file__).resolve().parents[2])

        with open(shim_path, "w") as shim_file:
            shim_file.write(
                SHIM_TEMPLATE.format(
                    executable=sys.executable,
                    package_root=package_root,
                    config_path=config_path,
                )
            )

        os.chmod(
            shim_path,
            stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH,
        )

    # =========================================================================
    # Decision server
    # =========================================================================

    async def _ensure_server(self):
        async with self._server_lock:
            if self._server is not None:
                return

            try:
                self._directory = tempfile.mkdtemp(
                    prefix="cs-fault-",
                    dir=self._scratch_directory,
                )
                self._socket_path = os.path.join(self._directory, "decide.sock")

                self._server = await asyncio.start_unix_server(
                    self._handle_request,
                    path=self._socket_path,
                )

            except OSError as err:
                raise FaultInjectionSetupError(
                    f"Err. - could not start fault decision server - {err}"
                ) from err

    async def _handle_request(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ):
        try:
            request = msgspec.json.decode(
                await reader.readline(),
                type=FaultRequest,
            )

            verdict = self._decide(request)

            writer.write(msgspec.json.encode(verdict) + b"\n")
            await writer.drain()

            registration = self._registrations.get(request.shim_id)
            await self._logger.log(
                FaultDebug(
                    message=f"Invocation {' '.join(request.args)} delayed by {verdict.delay_seconds}s",
                    shim=registration.shim_path if registration else request.shim_id,
                )
            )

        except (msgspec.DecodeError, ConnectionError) as err:
            await self._logger.log(
                FaultError(
                    message=f"Failed to answer shim request - {err}",
                    shim=self._socket_path or "",
                )
            )

        finally:
            writer.close()

    def _decide(self, request: FaultRequest) -> FaultVerdict:
        registration = self._registrations.get(request.shim_id)
        if registration is None:
            return FaultVerdict()

        fault_spec = registration.fault_spec
        delayed = fault_spec.matches(request.args) and (
            not fault_spec.one_shot or registration.latch.try_trigger()
        )

        delay_seconds = fault_spec.delay_seconds if delayed else 0.0

        registration.injections.append(
            Injection(
                args=tuple(request.args),
                pid=request.pid,
                delayed=delayed,
                delay_seconds=delay_seconds,
                timestamp=time.time(),
            )
        )

        return FaultVerdict(delay_seconds=delay_seconds)

    async def close(self):
        async with self._server_lock:
            if self._server is not None:
                self._server.close()
                await self._server.wait_closed()
                self._server = None

            if self._directory is not None:
                shutil.rmtree(self._directory, ignore_errors=True)
                self._directory = None
                self._socket_path = None
