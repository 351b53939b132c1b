class ExhaustionError(Exception):
    """
    Raised when the usable port range cannot satisfy a claim.

    Allocation never retries; the enclosing test fails immediately.
    """

    def __init__(self, requested: int, next_port: int, end: int):
        self.requested = requested
        self.next_port = next_port
        self.end = end
        super().__init__(
            f"Err. - cannot claim {requested} ports starting at {next_port}, range ends at {end}"
        )
