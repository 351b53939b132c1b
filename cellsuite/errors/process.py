"""
Process lifecycle exceptions.

Raised by ProcessHandle and ProcessGroup while starting, signaling and
waiting on orchestrated components.
"""


class StartupError(Exception):
    """
    Raised when a component fails to become ready.

    Carries the component name and the tail of its combined output so the
    failing scenario can report why the process never came up.
    """

    def __init__(self, name: str, message: str, output: list[str] | None = None):
        self.name = name
        self.output = output or []

        detail = f"Err. - component {name} - {message}"
        if self.output:
            tail = "\n".join(self.output[-20:])
            detail = f"{detail}\n--- last output ---\n{tail}"

        super().__init__(detail)


class StartupTimeoutError(StartupError):
    """
    Raised when readiness is not observed before the startup deadline.

    For health-checked components, ``last_error`` holds the exception the
    final failing check raised, if any.
    """

    def __init__(
        self,
        name: str,
        timeout: float,
        output: list[str] | None = None,
        last_error: BaseException | None = None,
    ):
        self.timeout = timeout
        self.last_error = last_error

        message = f"did not become ready within {timeout:.2f}s"
        if last_error is not None:
            message = f"{message} (last health check error: {last_error!r})"

        super().__init__(
            name,
            message,
            output=output,
        )


class ProcessExitedError(StartupError):
    """Raised when a component exits before it became ready."""

    def __init__(self, name: str, exit_code: int | None, output: list[str] | None = None):
        self.exit_code = exit_code
        super().__init__(
            name,
            f"exited with code {exit_code} before becoming ready",
            output=output,
        )


class SignalDeliveryError(Exception):
    """
    Raised when a signal cannot be delivered for a reason other than the
    process already being gone.
    """

    def __init__(self, name: str, signal_name: str, error: OSError):
        self.name = name
        self.signal_name = signal_name
        self.error = error
        super().__init__(
            f"Err. - failed to deliver {signal_name} to {name} - {error}"
        )


class ProcessGroupExitError(Exception):
    """Raised by ProcessGroup.wait() when a member exits with a non-zero code."""

    def __init__(self, name: str, exit_code: int, exit_codes: dict[str, int]):
        self.name = name
        self.exit_code = exit_code
        self.exit_codes = exit_codes
        super().__init__(
            f"Err. - group member {name} exited with code {exit_code}"
        )
