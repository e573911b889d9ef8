import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from .outcome import Outcome

log = logging.getLogger(__name__)

OK_MARKER = "[OK]"
FAILED_MARKER = "[FAILED]"


class StatusSink(ABC):
    """Receives the terminal Outcome of a supervised launch, once."""

    @abstractmethod
    def report(self, name: str, outcome: Outcome, diagnostics: Optional[str] = None) -> None:
        """
        Reports the outcome of a launch.

        :param name: The logical name of the supervised process.
        :param outcome: The terminal Outcome.
        :param diagnostics: Optional free-form text, typically the tail of stderr.
        """


class LoggingStatusSink(StatusSink):
    """Renders outcomes as tagged log lines."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or log

    def report(self, name: str, outcome: Outcome, diagnostics: Optional[str] = None) -> None:
        if outcome.is_success:
            self.logger.info(f"{OK_MARKER} {name} {outcome.describe()}")
            return
        self.logger.error(f"{FAILED_MARKER} {name} {outcome.describe()}")
        if diagnostics:
            self.logger.error(f"{name} stderr (tail):\n{diagnostics}")


class CallbackStatusSink(StatusSink):
    """Forwards outcomes to a callable, for structured notification."""

    def __init__(self, callback: Callable[[str, Outcome, Optional[str]], None]) -> None:
        self.callback = callback

    def report(self, name: str, outcome: Outcome, diagnostics: Optional[str] = None) -> None:
        self.callback(name, outcome, diagnostics)


class CompositeStatusSink(StatusSink):
    """Fans an outcome out to several sinks; one failing sink does not stop the rest."""

    def __init__(self, *sinks: StatusSink) -> None:
        self.sinks = list(sinks)

    def report(self, name: str, outcome: Outcome, diagnostics: Optional[str] = None) -> None:
        for sink in self.sinks:
            try:
                sink.report(name, outcome, diagnostics)
            except Exception as e:
                log.error(f"Status sink {type(sink).__name__} failed for '{name}': {e}", exc_info=True)
