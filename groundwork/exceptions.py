"""
Unified exception hierarchy for the groundwork framework.

Every framework error carries a human-readable message plus optional
structured context, so callers can catch all framework errors with a single
except clause and still inspect what went wrong.
"""

from typing import Any


class GroundworkError(Exception):
    """
    Base exception for all groundwork errors.

    Example:
        try:
            groundwork.start()
        except GroundworkError as e:
            lg.error("startup failed", extra={"exception": e})
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigError(GroundworkError):
    """
    Configuration-related errors.

    Examples:
        - Config file not found or not a mapping
        - Invalid YAML syntax
        - Invalid value type (e.g. non-integer port)
    """

    pass


class StartupError(GroundworkError):
    """
    Startup-fatal errors.

    Raised when a worker cannot finish its startup sequence: a pipeline stage
    failed, a listener could not be bound, or a start listener aborted.
    """

    pass


class ModuleError(GroundworkError):
    """
    Error raised when a module fails to initialize.

    Carries the failing module's name in its context and the original error as
    ``cause`` (also chained as ``__cause__``).
    """

    def __init__(
        self,
        message: str,
        module: str,
        cause: BaseException | None = None,
        type: str = "groundwork.ModuleError",
    ) -> None:
        super().__init__(message, module=module)
        self.type = type
        self.module = module
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class ModuleNotRegisteredError(GroundworkError):
    """Raised when looking up a module name that was never loaded."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Unregistered module: "{name}".', module=name)
        self.name = name


class IPCError(GroundworkError):
    """Raised when a master/worker message cannot be decoded."""

    pass


class LifecycleError(GroundworkError):
    """Raised when process lifecycle operations fail."""

    pass
