"""Interface for logging service."""

from abc import ABC, abstractmethod


class ILoggingService(ABC):
    """
    Interface for logging operations.

    Every service receives one of these as ``logging_service`` and keeps it
    as ``self.logger``. ``child`` returns a logger tagged for one component
    or job so interleaved output from concurrent jobs stays readable.
    """

    @abstractmethod
    def log(self, level: str, message: str) -> None:
        """Log a message at the specified level."""

    def debug(self, message: str) -> None:
        self.log("DEBUG", message)

    def info(self, message: str) -> None:
        self.log("INFO", message)

    def warning(self, message: str) -> None:
        self.log("WARNING", message)

    def error(self, message: str) -> None:
        self.log("ERROR", message)

    @abstractmethod
    def is_enabled(self, level: str) -> bool:
        """Whether messages at ``level`` are written."""

    @abstractmethod
    def child(self, prefix: str) -> "ILoggingService":
        """Logger with the same level and sinks, tagged with ``prefix``."""

    @abstractmethod
    def time_operation(self, operation_name: str):
        """Context manager for timing operations."""
