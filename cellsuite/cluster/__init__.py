from .addresses import (
    AgentAddresses as AgentAddresses,
    ClusterAddresses as ClusterAddresses,
)
from .backend_cleanup import BackendCleaner as BackendCleaner
from .component_factory import (
    ComponentFactory as ComponentFactory,
    ConfigOverride as ConfigOverride,
    with_config as with_config,
)
