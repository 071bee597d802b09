"""Custom exceptions for pool-resource.

All exception classes carry a short message plus optional details so the
CLI can print an actionable error line without a traceback.
"""


class PoolResourceError(Exception):
    """Base exception for all pool-resource errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(PoolResourceError):
    """Exception raised for invalid source configuration.

    Examples:
        - retry_delay that is not a number or duration string
        - git_config entries without a name
    """

    def __init__(self, message: str, field: str | None = None, details: str | None = None):
        self.field = field
        super().__init__(message, details)


class RequestValidationError(PoolResourceError):
    """Raised when a resource request is missing required fields.

    Attributes:
        errors: Every validation message, in the order they were detected
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid payload")


class DescriptorError(PoolResourceError):
    """Raised when a lock descriptor file (name/metadata) cannot be read.

    Retrying against the remote can never fix this, so it is always fatal.
    """

    def __init__(self, message: str, path: str | None = None, details: str | None = None):
        self.path = path
        super().__init__(message, details)


class NoLocksAvailableError(PoolResourceError):
    """Raised when the requested lock is not currently claimable."""

    def __init__(self, message: str = "No locks to claim", pool: str | None = None):
        self.pool = pool
        super().__init__(message)


class StoreError(PoolResourceError):
    """Exception raised when a git command against the pool repository fails.

    Attributes:
        command: The git sub-command that failed (e.g. "push")
        output: Combined stdout/stderr reported by git
        returncode: Process exit status, if the process ran
    """

    def __init__(
        self,
        message: str,
        command: str | None = None,
        output: str = "",
        returncode: int | None = None,
    ):
        self.command = command
        self.output = output
        self.returncode = returncode
        super().__init__(message, output.strip() or None)

    def __str__(self) -> str:
        parts = [self.message]
        if self.command:
            parts.append(f"during git {self.command}")
        if self.returncode is not None:
            parts.append(f"exit status {self.returncode}")
        if self.details:
            parts.append(self.details)
        return " - ".join(parts)


class StoreSetupError(StoreError):
    """Raised when the working clone cannot be created or configured."""

    pass


class TooManyUnexpectedErrorsError(PoolResourceError):
    """Raised when pushing lock state fails unexpectedly too many times.

    Attributes:
        attempts: Number of unexpected push failures observed
        output: Raw git output of the last failure
    """

    def __init__(self, attempts: int, output: str = ""):
        self.attempts = attempts
        self.output = output
        super().__init__("too-many-unexpected-errors", output.strip() or None)


class LockNoLongerAcquiredError(PoolResourceError):
    """Raised when a claimed lock version was released after it was claimed."""

    def __init__(self, lock_name: str, ref: str):
        self.lock_name = lock_name
        self.ref = ref
        super().__init__("lock instance is no longer acquired", f"{lock_name} at {ref}")
