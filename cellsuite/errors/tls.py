class TLSConfigError(ValueError):
    """
    Raised when the agent admin scheme is https but the client certificate
    or key needed for mutual TLS is not configured.
    """

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            f"Err. - mutual TLS requires {', '.join(missing)} when CELLSUITE_ADMIN_SCHEME is https"
        )
