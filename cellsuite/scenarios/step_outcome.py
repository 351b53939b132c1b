from dataclasses import dataclass

from .evacuation_state import EvacuationState


@dataclass(slots=True)
class StepOutcome:
    state: EvacuationState
    succeeded: bool
    duration_seconds: float
    details: str | None = None
