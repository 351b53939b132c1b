"""
Builds ComponentSpecs for every platform component.

Each component is configured through a JSON file passed as
``-config <path>``. Callers adjust the generated configuration with
override callables, applied in order, that mutate the config dict in
place or return a replacement.
"""

from __future__ import annotations

import os
from typing import Any, Callable

import msgspec

from cellsuite.env import Env
from cellsuite.ports import PortAllocator
from cellsuite.processes import ComponentSpec, OutputPattern

from .addresses import AgentAddresses, ClusterAddresses

Config = dict[str, Any]
ConfigOverride = Callable[[Config], Config | None]


def with_config(**values: Any) -> ConfigOverride:

    def override(config: Config) -> None:
        config.update(values)

    return override


class ComponentFactory:

    def __init__(
        self,
        env: Env,
        ports: PortAllocator,
        addresses: ClusterAddresses,
        workdir: str,
    ) -> None:
        self.env = env
        self.ports = ports
        self.addresses = addresses
        self.workdir = workdir

        os.makedirs(workdir, exist_ok=True)

    @classmethod
    def create(
        cls,
        env: Env,
        ports: PortAllocator,
        workdir: str,
    ) -> ComponentFactory:
        return cls(
            env,
            ports,
            ClusterAddresses.allocate(ports),
            workdir,
        )

    def store(self, *overrides: ConfigOverride) -> ComponentSpec:
        return self._spec(
            "store",
            self.env.CELLSUITE_STORE_BIN,
            {
                "listen_address": self.addresses.store,
                "advertise_url": self.addresses.store_url,
                "convergence_repeat_interval": "30s",
            },
            overrides,
        )

    def router(self, *overrides: ConfigOverride) -> ComponentSpec:
        return self._spec(
            "router",
            self.env.CELLSUITE_ROUTER_BIN,
            {
                "listen_address": self.addresses.router,
                "store_url": self.addresses.store_url,
            },
            overrides,
        )

    def auctioneer(self, *overrides: ConfigOverride) -> ComponentSpec:
        return self._spec(
            "auctioneer",
            self.env.CELLSUITE_AUCTIONEER_BIN,
            {
                "listen_address": self.addresses.auctioneer,
                "store_url": self.addresses.store_url,
            },
            overrides,
        )

    def route_emitter(self, *overrides: ConfigOverride) -> ComponentSpec:
        return self._spec(
            "route-emitter",
            self.env.CELLSUITE_ROUTE_EMITTER_BIN,
            {
                "listen_address": self.addresses.route_emitter,
                "store_url": self.addresses.store_url,
                "router_address": self.addresses.router,
            },
            overrides,
        )

    def agent(
        self,
        index: int,
        *overrides: ConfigOverride,
    ) -> tuple[ComponentSpec, AgentAddresses]:
        start = self.ports.claim_ports(2)

        tls_config = self.env.get_tls_config() or {}

        config = self._apply(
            {
                "cell_id": f"cell-{index}",
                "listen_address": f"127.0.0.1:{start}",
                "listen_address_securable": f"127.0.0.1:{start + 1}",
                "admin_scheme": self.env.CELLSUITE_ADMIN_SCHEME,
                "store_url": self.addresses.store_url,
                "evacuation_timeout": "30s",
                "graceful_shutdown_interval": "10s",
                "backend_plugin": self.env.CELLSUITE_BACKEND_PLUGIN_BIN,
                "backend_plugin_flags": self.env.get_backend_plugin_flags(),
                "ca_cert": tls_config.get("ca_cert"),
                "server_cert": tls_config.get("client_cert"),
                "server_key": tls_config.get("client_key"),
            },
            overrides,
        )

        name = f"agent-{index}"
        spec = ComponentSpec(
            name=name,
            executable=self.env.CELLSUITE_AGENT_BIN,
            args=("-config", self._write_config(name, config)),
            readiness=self._readiness(),
        )

        return spec, AgentAddresses(
            cell_id=config["cell_id"],
            admin=config["listen_address"],
            secure=config["listen_address_securable"],
        )

    def _spec(
        self,
        name: str,
        executable: str,
        config: Config,
        overrides: tuple[ConfigOverride, ...],
    ) -> ComponentSpec:
        config = self._apply(config, overrides)

        return ComponentSpec(
            name=name,
            executable=executable,
            args=("-config", self._write_config(name, config)),
            readiness=self._readiness(),
        )

    def _apply(
        self,
        config: Config,
        overrides: tuple[ConfigOverride, ...],
    ) -> Config:
        for override in overrides:
            replacement = override(config)
            if replacement is not None:
                config = replacement

        return config

    def _readiness(self) -> OutputPattern:
        return OutputPattern(self.env.CELLSUITE_READY_PATTERN)

    def _write_config(self, name: str, config: Config) -> str:
        config_path = os.path.join(self.workdir, f"{name}.json")

        with open(config_path, "wb") as config_file:
            config_file.write(msgspec.json.encode(config))

        return config_path
