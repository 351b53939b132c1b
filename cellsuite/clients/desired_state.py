"""
Client for the desired-state store's JSON API.

Every call is a POST carrying a msgspec-encoded body; any non-2xx answer
raises DesiredStateError with the status and response body.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar

import msgspec

from cellsuite.errors import DesiredStateError
from cellsuite.logging import Logger
from cellsuite.models import (
    CompletedTask,
    PlacementGroup,
    RunState,
    TaskDescriptor,
    WorkloadDescriptor,
)

from .http_client import HTTPClient
from .logging_models import ClientDebug, ClientError

T = TypeVar("T")


class PlacementQuery(msgspec.Struct, kw_only=True):
    process_guid: str
    index: int


class DesiredStateClient(HTTPClient):

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        logger: Logger | None = None,
    ) -> None:
        super().__init__(timeout=timeout, logger=logger)
        self.url = url.rstrip("/")

    async def desire_workload(self, workload: WorkloadDescriptor) -> None:
        await self._post(
            "desire_workload",
            "/v1/desired_lrp/desire",
            workload,
        )

    async def placement_group(
        self,
        process_guid: str,
        index: int = 0,
    ) -> PlacementGroup:
        return await self._post(
            "placement_group",
            "/v1/actual_lrp_groups/get_by_process_guid_and_index",
            PlacementQuery(
                process_guid=process_guid,
                index=index,
            ),
            response_type=PlacementGroup,
        )

    async def desire_task(self, task: TaskDescriptor) -> None:
        await self._post(
            "desire_task",
            "/v1/tasks/desire",
            task,
        )

    async def completed_tasks(self) -> list[CompletedTask]:
        return await self._post(
            "completed_tasks",
            "/v1/tasks/list_completed",
            {},
            response_type=list[CompletedTask],
        )

    def workload_state_poller(
        self,
        process_guid: str,
        index: int = 0,
    ) -> Callable[[], Awaitable[RunState]]:

        async def poll() -> RunState:
            placement, _ = (await self.placement_group(process_guid, index)).resolve()
            return placement.state

        poll.description = f"run state of {process_guid}[{index}]"
        return poll

    def completed_tasks_poller(self) -> Callable[[], Awaitable[list[CompletedTask]]]:

        async def poll() -> list[CompletedTask]:
            return await self.completed_tasks()

        poll.description = "completed tasks"
        return poll

    async def _post(
        self,
        operation: str,
        path: str,
        payload: Any,
        response_type: type[T] | None = None,
    ) -> T | None:
        url = f"{self.url}{path}"

        async with self.session.post(
            url,
            data=msgspec.json.encode(payload),
            headers={"Content-Type": "application/json"},
        ) as response:
            body = await response.read()
            status = response.status

        if status < 200 or status >= 300:
            await self._logger.log(
                ClientError(
                    message=f"{operation} rejected",
                    url=url,
                    status=status,
                )
            )

            raise DesiredStateError(
                operation,
                status,
                body.decode(errors="replace"),
            )

        await self._logger.log(
            ClientDebug(
                message=operation,
                url=url,
                status=status,
            )
        )

        if response_type is None:
            return None

        return msgspec.json.decode(body, type=response_type)
