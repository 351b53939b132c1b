class EvacuationRejectedError(AssertionError):
    """Raised when an agent answers POST /evacuate with anything but 202."""

    def __init__(self, address: str, status: int):
        self.address = address
        self.status = status
        super().__init__(
            f"Expected 202 Accepted from {address}/evacuate, got {status}"
        )


class DesiredStateError(Exception):
    """Raised when the desired-state API answers with a non-2xx status."""

    def __init__(self, operation: str, status: int, body: str = ""):
        self.operation = operation
        self.status = status
        self.body = body
        super().__init__(
            f"Err. - desired-state {operation} failed with status {status}: {body}"
        )
