"""
Long-running workload models exchanged with the desired-state store.

A workload is desired once and then runs as one or more instances; each
instance's placement on an agent is an ActualPlacement. While an agent
evacuates, an instance can briefly have two placements, the one being
evacuated and its replacement, grouped as a PlacementGroup.
"""

from __future__ import annotations

import msgspec

from .run_state import RunState


class Route(msgspec.Struct, kw_only=True):
    hostnames: list[str]
    port: int


class RunAction(msgspec.Struct, kw_only=True):
    path: str
    args: list[str] = []
    user: str = "vcap"
    env: dict[str, str] = {}


class WorkloadDescriptor(msgspec.Struct, kw_only=True):
    process_guid: str
    domain: str
    root_fs: str
    instances: int = 1
    action: RunAction
    routes: list[Route] = []
    ports: list[int] = []
    memory_mb: int = 128
    disk_mb: int = 1024
    log_guid: str = ""


class ActualPlacement(msgspec.Struct, kw_only=True):
    process_guid: str
    index: int
    instance_guid: str = ""
    cell_id: str = ""
    address: str = ""
    state: RunState = RunState.UNCLAIMED


class PlacementGroup(msgspec.Struct, kw_only=True):
    instance: ActualPlacement | None = None
    evacuating: ActualPlacement | None = None

    def resolve(self) -> tuple[ActualPlacement, bool]:
        """
        Return the placement that currently represents the instance and
        whether it is the evacuating one. The replacement wins once it is
        running or has crashed.
        """
        if self.instance is None and self.evacuating is None:
            raise ValueError("Err. - placement group has neither an instance nor an evacuating placement")

        if self.instance is None:
            return self.evacuating, True

        if self.evacuating is None:
            return self.instance, False

        if self.instance.state in (RunState.RUNNING, RunState.CRASHED):
            return self.instance, False

        return self.evacuating, True
