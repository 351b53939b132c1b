from typing import Any


class PollingConfigError(ValueError):
    """Raised when a timeout/interval pair is rejected before polling starts."""
    pass


class AssertionTimeoutError(AssertionError):
    """
    Raised by eventually() when the condition never held before the deadline.

    The last observed value and the last probe error are kept for diagnosis.
    """

    def __init__(
        self,
        description: str,
        condition: str,
        last_value: Any,
        elapsed: float,
        attempts: int,
        last_error: BaseException | None = None,
    ):
        self.description = description
        self.condition = condition
        self.last_value = last_value
        self.elapsed = elapsed
        self.attempts = attempts
        self.last_error = last_error

        message = (
            f"Timed out after {elapsed:.3f}s ({attempts} attempts) waiting for "
            f"{description} to {condition}; last value was {last_value!r}"
        )

        if last_error is not None:
            message = f"{message} (last error: {last_error!r})"

        super().__init__(message)


class ConsistencyViolationError(AssertionError):
    """Raised by consistently() at the first sample that fails its condition."""

    def __init__(
        self,
        description: str,
        condition: str,
        value: Any,
        elapsed: float,
        samples: int,
        error: BaseException | None = None,
    ):
        self.description = description
        self.condition = condition
        self.value = value
        self.elapsed = elapsed
        self.samples = samples
        self.error = error

        message = (
            f"{description} stopped satisfying {condition} after {elapsed:.3f}s "
            f"(sample {samples}); offending value was {value!r}"
        )

        if error is not None:
            message = f"{message} (probe error: {error!r})"

        super().__init__(message)
