from enum import Enum


class EvacuationState(Enum):
    PENDING = "PENDING"
    CLUSTER_UP = "CLUSTER_UP"
    WORKLOAD_PLACED = "WORKLOAD_PLACED"
    WORKLOAD_RUNNING = "WORKLOAD_RUNNING"
    EVACUATION_REQUESTED = "EVACUATION_REQUESTED"
    EVACUATION_IN_FLIGHT = "EVACUATION_IN_FLIGHT"
    RESOLVED = "RESOLVED"
    FAILED = "FAILED"
