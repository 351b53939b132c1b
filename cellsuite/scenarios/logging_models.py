from cellsuite.logging.models import Entry, LogLevel


class ScenarioInfo(Entry, kw_only=True):
    """Info-level logging for scenario state transitions."""
    scenario: str
    state: str
    level: LogLevel = LogLevel.INFO


class ScenarioError(Entry, kw_only=True):
    """Error-level logging for failed scenario steps and teardown."""
    scenario: str
    state: str
    level: LogLevel = LogLevel.ERROR
