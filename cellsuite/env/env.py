from __future__ import annotations
import os
import tempfile
from pydantic import BaseModel, StrictStr, StrictInt
from typing import Callable, Dict, Literal, Union

from .time_parser import TimeParser

PrimaryType = Union[str, int, float, bytes, bool]


class Env(BaseModel):
    # Component executables
    CELLSUITE_STORE_BIN: StrictStr = "bbs"
    CELLSUITE_ROUTER_BIN: StrictStr = "gorouter"
    CELLSUITE_AUCTIONEER_BIN: StrictStr = "auctioneer"
    CELLSUITE_ROUTE_EMITTER_BIN: StrictStr = "route-emitter"
    CELLSUITE_AGENT_BIN: StrictStr = "rep"
    CELLSUITE_BACKEND_PLUGIN_BIN: StrictStr = "grootfs"
    CELLSUITE_BACKEND_PLUGIN_FLAGS: StrictStr = "--config,/etc/grootfs.yml"

    # Readiness
    CELLSUITE_READY_PATTERN: StrictStr = r"\bstarted\b"
    CELLSUITE_STARTUP_TIMEOUT: StrictStr = "30s"
    CELLSUITE_GRACE_PERIOD: StrictStr = "5s"

    # Polling defaults
    CELLSUITE_EVENTUALLY_TIMEOUT: StrictStr = "60s"
    CELLSUITE_POLL_INTERVAL: StrictStr = "500ms"
    CELLSUITE_CONSISTENTLY_WINDOW: StrictStr = "2s"

    # Ports
    CELLSUITE_PORT_RANGE_START: StrictInt = 20000
    CELLSUITE_PORTS_PER_WORKER: StrictInt = 1000

    # Cluster
    CELLSUITE_ROUTER_HOST: StrictStr = "lrp-route"
    CELLSUITE_ADMIN_SCHEME: Literal["https", "http"] = "https"
    CELLSUITE_TLS_CA_CERT: StrictStr | None = None
    CELLSUITE_TLS_CLIENT_CERT: StrictStr | None = None
    CELLSUITE_TLS_CLIENT_KEY: StrictStr | None = None
    CELLSUITE_REQUEST_TIMEOUT: StrictStr = "5s"
    CELLSUITE_SCRATCH_DIRECTORY: StrictStr = tempfile.gettempdir()

    # Logging
    CELLSUITE_LOG_LEVEL: StrictStr = "info"
    CELLSUITE_LOG_OUTPUT: Literal["stdout", "stderr"] = "stderr"
    CELLSUITE_LOGS_DIRECTORY: StrictStr = os.getcwd()

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "CELLSUITE_STORE_BIN": str,
            "CELLSUITE_ROUTER_BIN": str,
            "CELLSUITE_AUCTIONEER_BIN": str,
            "CELLSUITE_ROUTE_EMITTER_BIN": str,
            "CELLSUITE_AGENT_BIN": str,
            "CELLSUITE_BACKEND_PLUGIN_BIN": str,
            "CELLSUITE_BACKEND_PLUGIN_FLAGS": str,
            "CELLSUITE_READY_PATTERN": str,
            "CELLSUITE_STARTUP_TIMEOUT": str,
            "CELLSUITE_GRACE_PERIOD": str,
            "CELLSUITE_EVENTUALLY_TIMEOUT": str,
            "CELLSUITE_POLL_INTERVAL": str,
            "CELLSUITE_CONSISTENTLY_WINDOW": str,
            "CELLSUITE_PORT_RANGE_START": int,
            "CELLSUITE_PORTS_PER_WORKER": int,
            "CELLSUITE_ROUTER_HOST": str,
            "CELLSUITE_ADMIN_SCHEME": str,
            "CELLSUITE_TLS_CA_CERT": str,
            "CELLSUITE_TLS_CLIENT_CERT": str,
            "CELLSUITE_TLS_CLIENT_KEY": str,
            "CELLSUITE_REQUEST_TIMEOUT": str,
            "CELLSUITE_SCRATCH_DIRECTORY": str,
            "CELLSUITE_LOG_LEVEL": str,
            "CELLSUITE_LOG_OUTPUT": str,
            "CELLSUITE_LOGS_DIRECTORY": str,
        }

    def seconds(self, field_name: str) -> float:
        """
        Parse a duration field (e.g. ``CELLSUITE_GRACE_PERIOD="5s"``) into seconds.
        """
        return TimeParser().parse(getattr(self, field_name))

    def get_polling_config(self) -> dict:
        return {
            "timeout": self.seconds("CELLSUITE_EVENTUALLY_TIMEOUT"),
            "interval": self.seconds("CELLSUITE_POLL_INTERVAL"),
            "window": self.seconds("CELLSUITE_CONSISTENTLY_WINDOW"),
        }

    def get_backend_plugin_flags(self) -> list[str]:
        return [
            flag for flag in self.CELLSUITE_BACKEND_PLUGIN_FLAGS.split(",") if flag
        ]

    def get_tls_config(self) -> dict | None:
        if self.CELLSUITE_ADMIN_SCHEME != "https":
            return None

        return {
            "ca_cert": self.CELLSUITE_TLS_CA_CERT,
            "client_cert": self.CELLSUITE_TLS_CLIENT_CERT,
            "client_key": self.CELLSUITE_TLS_CLIENT_KEY,
        }
