import msgspec

from .workload import RunAction


class TaskDescriptor(msgspec.Struct, kw_only=True):
    task_guid: str
    domain: str
    root_fs: str
    action: RunAction
    memory_mb: int = 128
    disk_mb: int = 1024
    result_file: str = ""


class CompletedTask(msgspec.Struct, kw_only=True):
    task_guid: str
    failed: bool = False
    failure_reason: str = ""
    result: str = ""
