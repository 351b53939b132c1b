from __future__ import annotations

from dataclasses import dataclass

from cellsuite.ports import PortAllocator


@dataclass(frozen=True, slots=True)
class ClusterAddresses:
    store: str
    router: str
    auctioneer: str
    route_emitter: str

    @classmethod
    def allocate(
        cls,
        ports: PortAllocator,
        host: str = "127.0.0.1",
    ) -> ClusterAddresses:
        start = ports.claim_ports(4)

        return cls(
            store=f"{host}:{start}",
            router=f"{host}:{start + 1}",
            auctioneer=f"{host}:{start + 2}",
            route_emitter=f"{host}:{start + 3}",
        )

    @property
    def store_url(self) -> str:
        return f"http://{self.store}"


@dataclass(frozen=True, slots=True)
class AgentAddresses:
    cell_id: str
    admin: str
    secure: str
