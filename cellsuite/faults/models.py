import msgspec


class ShimConfig(msgspec.Struct, kw_only=True):
    shim_id: str
    socket_path: str
    target: str
    trace_path: str
    connect_timeout: float = 5.0


class FaultRequest(msgspec.Struct, kw_only=True):
    shim_id: str
    args: list[str]
    pid: int


class FaultVerdict(msgspec.Struct, kw_only=True):
    delay_seconds: float = 0.0


class Injection(msgspec.Struct, kw_only=True, frozen=True):
    args: tuple[str, ...]
    pid: int
    delayed: bool
    delay_seconds: float
    timestamp: float
