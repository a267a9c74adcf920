"""
Custom exception classes for asa-host.
"""


class AsaHostError(Exception):
    """Base exception class for asa-host errors."""
    pass


class InvalidArgumentError(AsaHostError):
    """Raised when a command line argument or setting is invalid."""
    pass


class RuntimeUnavailableError(AsaHostError):
    """Raised when the Docker daemon cannot be reached or a call fails."""
    pass


class ContainerNotFoundError(AsaHostError):
    """Raised when the named container does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Container '{name}' does not exist")
        self.name = name


class ContainerNotRunningError(AsaHostError):
    """Raised when an operation needs a running container."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Server '{name}' is not running")
        self.name = name


class RestartLimitExceededError(AsaHostError):
    """Raised when the watchdog exhausts its restart budget."""

    def __init__(self, attempts: int, window_seconds: int) -> None:
        super().__init__(
            f"Too many restarts ({attempts}) in {window_seconds}s window"
        )
        self.attempts = attempts
        self.window_seconds = window_seconds


class RconCommandError(AsaHostError):
    """Raised when an RCON command executed inside the container fails."""
    pass


class BackupError(AsaHostError):
    """Backup operation error."""
    pass


class VolumeNotFoundError(BackupError):
    """Raised when the server files volume cannot be determined."""
    pass
