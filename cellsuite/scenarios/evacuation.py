"""
End-to-end evacuation of a running workload between two agents.

The scenario walks a fixed sequence of states. Each step either reaches
its state or raises, and the first failure ends the run. Teardown of every
process, shim and HTTP session runs regardless of where the run stopped.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from cellsuite.clients import AgentAdminClient, DesiredStateClient, RoutingClient
from cellsuite.cluster import AgentAddresses, ComponentFactory, ConfigOverride, with_config
from cellsuite.errors import EvacuationRejectedError
from cellsuite.faults import FaultInjector, FaultSpec
from cellsuite.logging import Logger
from cellsuite.models import (
    ActualPlacement,
    RunState,
    default_workload,
    generate_guid,
)
from cellsuite.polling import Poller, equal, satisfies
from cellsuite.processes import (
    ProcessGroup,
    ProcessHandle,
    SignalKind,
    stop_processes,
)

from .evacuation_spec import EvacuationSpec
from .evacuation_state import EvacuationState
from .logging_models import ScenarioError, ScenarioInfo
from .scenario_outcome import ScenarioOutcome
from .scenario_result import ScenarioResult
from .step_outcome import StepOutcome


@dataclass(slots=True)
class AgentMember:
    handle: ProcessHandle
    addresses: AgentAddresses


class EvacuationScenario:

    def __init__(
        self,
        factory: ComponentFactory,
        spec: EvacuationSpec,
        logger: Logger | None = None,
    ) -> None:
        self.factory = factory
        self.spec = spec
        self.state = EvacuationState.PENDING

        self.env = factory.env
        self.process_guid = spec.process_guid or generate_guid()
        self.route_host = spec.route_host or self.env.CELLSUITE_ROUTER_HOST

        self._logger = logger or Logger()
        self._poller = Poller(self.env, logger=self._logger)

        self._startup_timeout = self.env.seconds("CELLSUITE_STARTUP_TIMEOUT")
        self._grace_period = self.env.seconds("CELLSUITE_GRACE_PERIOD")
        request_timeout = self.env.seconds("CELLSUITE_REQUEST_TIMEOUT")

        self.desired_state = DesiredStateClient(
            factory.addresses.store_url,
            timeout=request_timeout,
            logger=self._logger,
        )
        self.routing = RoutingClient(
            factory.addresses.router,
            timeout=request_timeout,
            logger=self._logger,
        )
        self.admin = AgentAdminClient.from_env(
            self.env,
            logger=self._logger,
        )

        self.cluster: ProcessGroup | None = None
        self.agents: list[AgentMember] = []
        self.fault_injector: FaultInjector | None = None

        self._placement: ActualPlacement | None = None
        self._evacuating: AgentMember | None = None

    async def run(self) -> ScenarioOutcome:
        start = time.monotonic()
        outcome = ScenarioOutcome(
            name=self.spec.name,
            result=ScenarioResult.PASSED,
            duration_seconds=0.0,
        )

        try:
            for state, step in self.steps():
                await self._advance(outcome, state, step)

        except Exception as error:
            outcome.result = ScenarioResult.FAILED
            outcome.error = str(error)
            outcome.exception = error

            failed_in = self.state
            self.state = EvacuationState.FAILED

            await self._logger.log(
                ScenarioError(
                    message=f"Failed after {failed_in.value} - {error}",
                    scenario=self.spec.name,
                    state=self.state.value,
                )
            )

        finally:
            await self.teardown()
            outcome.duration_seconds = time.monotonic() - start

        return outcome

    def steps(self) -> list[tuple[EvacuationState, Callable[[], Awaitable[None]]]]:
        return [
            (EvacuationState.CLUSTER_UP, self.bring_cluster_up),
            (EvacuationState.WORKLOAD_PLACED, self.place_workload),
            (EvacuationState.WORKLOAD_RUNNING, self.await_workload_running),
            (EvacuationState.EVACUATION_REQUESTED, self.request_evacuation),
            (EvacuationState.EVACUATION_IN_FLIGHT, self.await_evacuation),
            (EvacuationState.RESOLVED, self.verify_resolution),
        ]

    async def _advance(
        self,
        outcome: ScenarioOutcome,
        state: EvacuationState,
        step: Callable[[], Awaitable[None]],
    ):
        step_started = time.monotonic()

        try:
            await step()

        except Exception as error:
            outcome.steps.append(
                StepOutcome(
                    state=state,
                    succeeded=False,
                    duration_seconds=time.monotonic() - step_started,
                    details=str(error),
                )
            )
            raise

        outcome.steps.append(
            StepOutcome(
                state=state,
                succeeded=True,
                duration_seconds=time.monotonic() - step_started,
            )
        )

        self.state = state
        await self._logger.log(
            ScenarioInfo(
                message=f"Reached {state.value}",
                scenario=self.spec.name,
                state=state.value,
            )
        )

    # =========================================================================
    # Steps
    # =========================================================================

    async def bring_cluster_up(self):
        self.cluster = ProcessGroup(
            [
                self._handle(self.factory.store()),
                self._handle(self.factory.router()),
                self._handle(self.factory.auctioneer()),
                self._handle(self.factory.route_emitter()),
            ],
            grace_period=self._grace_period,
            name="cluster",
            logger=self._logger,
        )

        await self.cluster.invoke()

        for index in range(2):
            await self.start_agent(index, *self.agent_overrides(index))

    def agent_overrides(self, index: int) -> list[ConfigOverride]:
        return [
            with_config(
                evacuation_timeout=f"{self.spec.evacuation_timeout_seconds}s",
            )
        ]

    async def start_agent(self, index: int, *overrides: ConfigOverride) -> AgentMember:
        spec, addresses = self.factory.agent(index, *overrides)

        member = AgentMember(
            handle=self._handle(spec),
            addresses=addresses,
        )
        self.agents.append(member)

        await member.handle.start()

        return member

    async def place_workload(self):
        await self.desired_state.desire_workload(
            default_workload(
                self.process_guid,
                host=self.route_host,
                instances=self.spec.instances,
            )
        )

    async def await_workload_running(self):
        await self._poller.eventually(
            self.desired_state.workload_state_poller(self.process_guid),
            equal(RunState.RUNNING),
        )

        await self._poller.eventually(
            self.routing.response_code_poller(self.route_host),
            equal(200),
        )

    async def request_evacuation(self):
        placement, evacuating = (
            await self.desired_state.placement_group(self.process_guid, 0)
        ).resolve()

        if evacuating:
            raise AssertionError(
                f"Expected {self.process_guid} to be placed without an evacuating instance"
            )

        self._placement = placement
        self._evacuating = self.agent_for_cell(placement.cell_id)

        status = await self.admin.evacuate(self._evacuating.addresses.admin)
        if status != 202:
            raise EvacuationRejectedError(
                self._evacuating.addresses.admin,
                status,
            )

    async def await_evacuation(self):
        """
        Keep the route answering 200 until the evacuating agent exits. The
        first failed or non-200 route sample ends the step with a
        ConsistencyViolationError.
        """
        agent = self._evacuating.handle
        budget = self.spec.evacuation_timeout_seconds + self._poller.interval

        routing = asyncio.create_task(
            self._poller.consistently(
                self.routing.response_code_poller(self.route_host),
                equal(200),
                window=budget,
                description=f"response code for {self.route_host} while {agent.name} evacuates",
            )
        )
        exited = asyncio.create_task(agent.wait())

        try:
            done, _ = await asyncio.wait(
                [routing, exited],
                timeout=budget,
                return_when=asyncio.FIRST_COMPLETED,
            )

        finally:
            for task in (routing, exited):
                if not task.done():
                    task.cancel()

            await asyncio.gather(routing, exited, return_exceptions=True)

        if routing in done:
            routing.result()

        if exited in done:
            exit_code = exited.result()
            if exit_code != 0:
                raise AssertionError(
                    f"Expected {agent.name} to exit cleanly after evacuating, got code {exit_code}"
                )

            return

        raise AssertionError(
            f"Expected {agent.name} to exit within {self.spec.evacuation_timeout_seconds}s of evacuation"
        )

    async def verify_resolution(self):
        evacuated_cell = self._evacuating.addresses.cell_id
        state_poller = self.desired_state.workload_state_poller(self.process_guid)

        async def resolved_placement() -> ActualPlacement:
            placement, _ = (
                await self.desired_state.placement_group(self.process_guid, 0)
            ).resolve()

            return placement

        await self._poller.eventually(
            state_poller,
            equal(RunState.RUNNING),
            timeout=self._poller.interval,
            interval=self._poller.interval,
        )

        await self._poller.eventually(
            resolved_placement,
            satisfies(
                lambda placement: placement.state == RunState.RUNNING
                and placement.cell_id != evacuated_cell,
                f"run away from {evacuated_cell}",
            ),
            timeout=self._poller.interval,
            interval=self._poller.interval,
            description=f"placement of {self.process_guid}",
        )

        await self._poller.consistently(
            self.routing.response_code_poller(self.route_host),
            equal(200),
            window=self.spec.consistently_window_seconds,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def agent_for_cell(self, cell_id: str) -> AgentMember:
        for member in self.agents:
            if member.addresses.cell_id == cell_id:
                return member

        raise AssertionError(
            f"Workload {self.process_guid} is placed on unknown cell {cell_id!r}"
        )

    def _handle(self, spec) -> ProcessHandle:
        return ProcessHandle(
            spec,
            startup_timeout=self._startup_timeout,
            grace_period=self._grace_period,
            logger=self._logger,
        )

    async def teardown(self):
        await stop_processes(
            self.cluster,
            *[member.handle for member in self.agents],
            grace_period=self._grace_period,
        )

        if self.fault_injector is not None:
            await self.fault_injector.close()

        await asyncio.gather(
            self.desired_state.close(),
            self.routing.close(),
            self.admin.close(),
        )


class HangingBackendScenario(EvacuationScenario):
    """
    Evacuation of a lone agent whose container backend hangs on the first
    non-health-check delete. Stop-instance requests that pile up behind the
    hung delete must not keep the agent from exiting once its graceful
    shutdown interval has passed.
    """

    def __init__(
        self,
        factory: ComponentFactory,
        spec: EvacuationSpec,
        logger: Logger | None = None,
    ) -> None:
        super().__init__(factory, spec, logger=logger)

        self.fault_injector = FaultInjector(self.env, logger=self._logger)
        self.plugin_shim: str | None = None
        self._stop_requests: asyncio.Task | None = None

    def steps(self) -> list[tuple[EvacuationState, Callable[[], Awaitable[None]]]]:
        return [
            (EvacuationState.CLUSTER_UP, self.bring_cluster_up),
            (EvacuationState.WORKLOAD_PLACED, self.place_workload),
            (EvacuationState.WORKLOAD_RUNNING, self.await_workload_running),
            (EvacuationState.EVACUATION_REQUESTED, self.request_evacuation),
            (EvacuationState.EVACUATION_IN_FLIGHT, self.flood_stop_requests),
            (EvacuationState.RESOLVED, self.await_agent_exit),
        ]

    async def bring_cluster_up(self):
        self.plugin_shim = await self.fault_injector.wrap(
            self.env.CELLSUITE_BACKEND_PLUGIN_BIN,
            FaultSpec.hanging_delete(self.spec.fault_delay_seconds),
        )

        await super().bring_cluster_up()

        # Only agent A may host the workload.
        other = self.agents[1].handle
        other.signal(SignalKind.KILL)
        await other.wait(timeout=self._grace_period)

    def agent_overrides(self, index: int) -> list[ConfigOverride]:
        overrides = super().agent_overrides(index)

        if index == 0:
            overrides.append(
                with_config(
                    backend_plugin=self.plugin_shim,
                    graceful_shutdown_interval="1ms",
                )
            )

        return overrides

    async def await_workload_running(self):
        await self._poller.eventually(
            self.desired_state.workload_state_poller(self.process_guid),
            equal(RunState.RUNNING),
        )

    async def flood_stop_requests(self):
        self._stop_requests = asyncio.create_task(
            self._request_stops(
                self._evacuating.addresses.admin,
                self._placement.process_guid,
                self._placement.instance_guid,
            )
        )

    async def _request_stops(
        self,
        address: str,
        process_guid: str,
        instance_guid: str,
    ):
        for _ in range(self.spec.stop_request_count):
            await self.admin.stop_instance(address, process_guid, instance_guid)
            await asyncio.sleep(self.spec.stop_request_interval_seconds)

    async def await_agent_exit(self):
        agent = self._evacuating.handle

        try:
            await agent.wait(timeout=self.spec.agent_exit_budget_seconds)

        except asyncio.TimeoutError as error:
            raise AssertionError(
                f"Expected {agent.name} to exit within {self.spec.agent_exit_budget_seconds}s of evacuation"
            ) from error

    async def teardown(self):
        if self._stop_requests is not None:
            self._stop_requests.cancel()
            await asyncio.gather(self._stop_requests, return_exceptions=True)

        await super().teardown()
