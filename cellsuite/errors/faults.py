class FaultInjectionSetupError(Exception):
    """Raised when a fault-injection shim cannot be built or installed."""
    pass
