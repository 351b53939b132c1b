from __future__ import annotations

import asyncio
from typing import Iterable

from cellsuite.errors import (
    ProcessGroupExitError,
    SignalDeliveryError,
    StartupError,
)
from cellsuite.logging import Logger

from .logging_models import GroupError, GroupInfo, ProcessError
from .models import ComponentSpec, GroupStatus, SignalKind
from .process_handle import ProcessHandle


class ProcessGroup:
    """
    An ordered set of components started and torn down as a unit.

    Members start strictly in order, each only once its predecessor is
    ready. A member failing to start rolls back every member already
    running before the failure is re-raised, so a failed invoke never
    leaves processes behind.
    """

    def __init__(
        self,
        members: Iterable[ProcessHandle | ComponentSpec],
        grace_period: float = 5.0,
        name: str = "group",
        logger: Logger | None = None,
    ) -> None:
        self.name = name
        self.status = GroupStatus.FORMING

        self._grace_period = grace_period
        self._logger = logger or Logger()
        self._members: list[ProcessHandle] = []

        for member in members:
            if isinstance(member, ComponentSpec):
                member = ProcessHandle(
                    member,
                    grace_period=grace_period,
                    logger=self._logger,
                )

            if member.name in self.names:
                raise ValueError(
                    f"Err. - duplicate member {member.name} in group {name}"
                )

            self._members.append(member)

        self._teardown_lock = asyncio.Lock()
        self._exit_codes: dict[str, int | None] = {}

    @classmethod
    async def invoke_members(
        cls,
        *members: ProcessHandle | ComponentSpec,
        grace_period: float = 5.0,
        name: str = "group",
        logger: Logger | None = None,
    ) -> ProcessGroup:
        group = cls(
            members,
            grace_period=grace_period,
            name=name,
            logger=logger,
        )

        return await group.invoke()

    @property
    def names(self) -> list[str]:
        return [member.name for member in self._members]

    @property
    def members(self) -> list[ProcessHandle]:
        return list(self._members)

    def __getitem__(self, name: str) -> ProcessHandle:
        for member in self._members:
            if member.name == name:
                return member

        raise KeyError(name)

    def __contains__(self, name: str) -> bool:
        return name in self.names

    def __len__(self) -> int:
        return len(self._members)

    async def __aenter__(self) -> ProcessGroup:
        return await self.invoke()

    async def __aexit__(self, *args) -> None:
        await self.teardown()

    async def invoke(self) -> ProcessGroup:
        if self.status != GroupStatus.FORMING:
            raise RuntimeError(
                f"Err. - group {self.name} has already been invoked"
            )

        started: list[ProcessHandle] = []

        for member in self._members:
            try:
                await member.start()
                started.append(member)

            except StartupError:
                await self._log_error(
                    f"Member {member.name} failed to start, rolling back {len(started)} started member(s)"
                )

                await self._stop_members([*started, member])
                self.status = GroupStatus.DOWN

                raise

            except BaseException:
                await self._stop_members([*started, member])
                self.status = GroupStatus.DOWN

                raise

        self.status = GroupStatus.UP
        await self._log_info(f"Group {self.name} is up")

        return self

    async def signal(self, kind: SignalKind) -> dict[str, bool]:
        results = await asyncio.gather(
            *[self._signal_member(member, kind) for member in self._members]
        )

        return dict(zip(self.names, results))

    async def _signal_member(self, member: ProcessHandle, kind: SignalKind) -> bool:
        try:
            return member.signal(kind)

        except SignalDeliveryError as err:
            await self._logger.log(
                ProcessError(
                    message=str(err),
                    component=member.name,
                    pid=member.pid,
                )
            )

            return False

    async def wait(self, timeout: float | None = None) -> dict[str, int | None]:
        await asyncio.wait_for(
            asyncio.gather(*[member.wait() for member in self._members]),
            timeout=timeout,
        )

        exit_codes = {member.name: member.exit_code for member in self._members}

        failed = sorted(
            [
                member
                for member in self._members
                if member.exit_code not in (0, None)
            ],
            key=lambda member: member.exited_at,
        )

        if failed:
            first = failed[0]
            raise ProcessGroupExitError(
                first.name,
                first.exit_code,
                exit_codes,
            )

        return exit_codes

    def remove(self, name: str) -> ProcessHandle:
        member = self[name]
        self._members.remove(member)

        return member

    async def teardown(self, grace_period: float | None = None) -> dict[str, int | None]:
        async with self._teardown_lock:
            if self.status == GroupStatus.DOWN:
                return dict(self._exit_codes)

            self.status = GroupStatus.TEARING_DOWN
            await self._log_info(f"Tearing down group {self.name}")

            self._exit_codes.update(
                await self._stop_members(
                    self._members,
                    grace_period=grace_period,
                )
            )

            self.status = GroupStatus.DOWN

            return dict(self._exit_codes)

    async def _stop_members(
        self,
        members: list[ProcessHandle],
        grace_period: float | None = None,
    ) -> dict[str, int | None]:
        if grace_period is None:
            grace_period = self._grace_period

        results = await asyncio.gather(
            *[member.stop(grace_period=grace_period) for member in members],
            return_exceptions=True,
        )

        exit_codes: dict[str, int | None] = {}
        for member, result in zip(members, results):
            if isinstance(result, BaseException):
                await self._log_error(
                    f"Failed to stop member {member.name} - {result!r}"
                )
                exit_codes[member.name] = member.exit_code
                continue

            exit_codes[member.name] = result

        return exit_codes

    async def _log_info(self, message: str) -> None:
        await self._logger.log(GroupInfo(message=message, group=self.name, members=self.names))

    async def _log_error(self, message: str) -> None:
        await self._logger.log(GroupError(message=message, group=self.name, members=self.names))


async def stop_processes(
    *targets: ProcessGroup | ProcessHandle | None,
    grace_period: float = 5.0,
) -> None:
    """
    Tear down any mix of groups and handles concurrently. ``None`` entries
    are skipped so callers can pass optionally-started members directly.
    """
    stops = []
    for target in targets:
        if target is None:
            continue

        if isinstance(target, ProcessGroup):
            stops.append(target.teardown(grace_period=grace_period))

        else:
            stops.append(target.stop(grace_period=grace_period))

    await asyncio.gather(*stops)
