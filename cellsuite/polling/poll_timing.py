from dataclasses import dataclass

from cellsuite.errors import PollingConfigError


@dataclass(frozen=True, slots=True)
class PollTiming:
    timeout: float
    interval: float

    def __post_init__(self):
        if self.interval <= 0:
            raise PollingConfigError(
                f"Err. - polling interval must be positive, got {self.interval}"
            )

        if self.timeout < self.interval:
            raise PollingConfigError(
                f"Err. - polling timeout {self.timeout} is shorter than interval {self.interval}"
            )
