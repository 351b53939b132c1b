from dataclasses import dataclass, field

from .evacuation_state import EvacuationState
from .scenario_result import ScenarioResult
from .step_outcome import StepOutcome


@dataclass(slots=True)
class ScenarioOutcome:
    name: str
    result: ScenarioResult
    duration_seconds: float
    steps: list[StepOutcome] = field(default_factory=list)
    error: str | None = None
    exception: BaseException | None = None

    @property
    def states(self) -> list[EvacuationState]:
        return [step.state for step in self.steps if step.succeeded]

    @property
    def passed(self) -> bool:
        return self.result == ScenarioResult.PASSED
