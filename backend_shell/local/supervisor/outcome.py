"""Terminal classification of a supervised process run."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class Outcome(ABC):
    """Base class for the three possible results of a launch."""

    is_success = False

    @abstractmethod
    def describe(self) -> str:
        """Returns a short human-readable account of the result."""


@dataclass(frozen=True)
class Success(Outcome):
    """The process ran and exited with status 0."""

    is_success = True

    def describe(self) -> str:
        return "exited successfully"


@dataclass(frozen=True)
class ExitFailure(Outcome):
    """The process ran and exited with a non-zero status (negative for signals on POSIX)."""

    code: int

    def describe(self) -> str:
        return f"failed with exit code {self.code}"


@dataclass(frozen=True)
class LaunchError(Outcome):
    """The process could not be started."""

    message: str

    def describe(self) -> str:
        return f"could not be launched: {self.message}"


def outcome_from_returncode(returncode: int) -> Outcome:
    """Maps an exit status onto Success or ExitFailure."""
    return Success() if returncode == 0 else ExitFailure(returncode)
