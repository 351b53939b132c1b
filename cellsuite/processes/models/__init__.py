from .component_spec import (
    ComponentSpec as ComponentSpec,
    component as component,
)
from .group_status import GroupStatus as GroupStatus
from .process_status import ProcessStatus as ProcessStatus
from .signal_kind import SignalKind as SignalKind
