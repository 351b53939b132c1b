import uuid

from .task import TaskDescriptor
from .workload import Route, RunAction, WorkloadDescriptor


DEFAULT_HOST = "lrp-route"
DEFAULT_DOMAIN = "cellsuite"
DEFAULT_ROOT_FS = "preloaded:cflinuxfs4"
DEFAULT_PORT = 8080


def generate_guid() -> str:
    return str(uuid.uuid4())


def default_workload(
    process_guid: str,
    host: str = DEFAULT_HOST,
    instances: int = 1,
    log_guid: str = "log-guid",
    root_fs: str = DEFAULT_ROOT_FS,
) -> WorkloadDescriptor:
    return WorkloadDescriptor(
        process_guid=process_guid,
        domain=DEFAULT_DOMAIN,
        root_fs=root_fs,
        instances=instances,
        action=RunAction(
            path="/tmp/lrp/go-server",
            env={"PORT": str(DEFAULT_PORT)},
        ),
        routes=[
            Route(
                hostnames=[host],
                port=DEFAULT_PORT,
            )
        ],
        ports=[DEFAULT_PORT],
        log_guid=log_guid,
    )


def task_with_run_action(
    domain: str,
    root_fs: str,
    memory_mb: int,
    disk_mb: int,
    path: str,
    args: list[str] | None = None,
    task_guid: str | None = None,
) -> TaskDescriptor:
    return TaskDescriptor(
        task_guid=task_guid or generate_guid(),
        domain=domain,
        root_fs=root_fs,
        memory_mb=memory_mb,
        disk_mb=disk_mb,
        action=RunAction(
            path=path,
            args=list(args or []),
        ),
    )
