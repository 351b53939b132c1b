class BackendCommandError(Exception):
    """Raised when a container-backend plugin command exits non-zero."""

    def __init__(self, command: list[str], exit_code: int | None, output: str):
        self.command = command
        self.exit_code = exit_code
        self.output = output
        super().__init__(
            f"Err. - {' '.join(command)} exited with code {exit_code}: {output.strip()}"
        )
