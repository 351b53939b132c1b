from .backend import BackendCommandError as BackendCommandError
from .faults import FaultInjectionSetupError as FaultInjectionSetupError
from .polling import (
    AssertionTimeoutError as AssertionTimeoutError,
    ConsistencyViolationError as ConsistencyViolationError,
    PollingConfigError as PollingConfigError,
)
from .ports import ExhaustionError as ExhaustionError
from .process import (
    ProcessExitedError as ProcessExitedError,
    ProcessGroupExitError as ProcessGroupExitError,
    SignalDeliveryError as SignalDeliveryError,
    StartupError as StartupError,
    StartupTimeoutError as StartupTimeoutError,
)
from .scenario import (
    DesiredStateError as DesiredStateError,
    EvacuationRejectedError as EvacuationRejectedError,
)
from .tls import TLSConfigError as TLSConfigError
