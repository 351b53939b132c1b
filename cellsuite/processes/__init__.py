from .models import (
    ComponentSpec as ComponentSpec,
    GroupStatus as GroupStatus,
    ProcessStatus as ProcessStatus,
    SignalKind as SignalKind,
    component as component,
)
from .process_group import (
    ProcessGroup as ProcessGroup,
    stop_processes as stop_processes,
)
from .process_handle import ProcessHandle as ProcessHandle
from .readiness import (
    HealthCheck as HealthCheck,
    OutputPattern as OutputPattern,
    ReadinessCheck as ReadinessCheck,
    Started as Started,
    tcp_port_open as tcp_port_open,
)
