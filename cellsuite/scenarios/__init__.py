from .evacuation import (
    EvacuationScenario as EvacuationScenario,
    HangingBackendScenario as HangingBackendScenario,
)
from .evacuation_spec import EvacuationSpec as EvacuationSpec
from .evacuation_state import EvacuationState as EvacuationState
from .scenario_outcome import ScenarioOutcome as ScenarioOutcome
from .scenario_result import ScenarioResult as ScenarioResult
from .step_outcome import StepOutcome as StepOutcome
