from .factories import (
    DEFAULT_HOST as DEFAULT_HOST,
    default_workload as default_workload,
    generate_guid as generate_guid,
    task_with_run_action as task_with_run_action,
)
from .run_state import RunState as RunState
from .task import (
    CompletedTask as CompletedTask,
    TaskDescriptor as TaskDescriptor,
)
from .workload import (
    ActualPlacement as ActualPlacement,
    PlacementGroup as PlacementGroup,
    Route as Route,
    RunAction as RunAction,
    WorkloadDescriptor as WorkloadDescriptor,
)
