import time
import logging
import threading
from typing import List, Optional

from backend_shell.local.config import effective_settings as config
from .launch_config import LaunchConfig
from .status import StatusSink
from .task import SupervisionHandle, supervise

log = logging.getLogger(__name__)


class BackendSupervisor:
    """
    Keeps track of every supervised launch of this shell so they can be
    inspected and stopped together when the host shuts down.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(BackendSupervisor, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        """Initializes the BackendSupervisor state."""
        if getattr(self, '_initialized', False):
            return

        self.handles: List[SupervisionHandle] = []
        self.handles_lock = threading.Lock()
        self.start_time: Optional[float] = None
        self._initialized = True

    def launch(
        self,
        launch_config: LaunchConfig,
        sink: Optional[StatusSink] = None,
        timeout: Optional[float] = None,
        name: str = config.BACKEND_NAME,
    ) -> SupervisionHandle:
        """
        Dispatches a supervised launch and tracks its handle.

        :param launch_config: What to run.
        :param sink: Where the Outcome is reported.
        :param timeout: Optional deadline in seconds.
        :param name: The logical name of the process.
        :return: The handle of the dispatched launch.
        """
        handle = supervise(launch_config, sink=sink, timeout=timeout, name=name)
        with self.handles_lock:
            self.handles.append(handle)
            if self.start_time is None:
                self.start_time = time.time()
        handle.add_done_callback(self._forget)
        return handle

    def _forget(self, handle: SupervisionHandle) -> None:
        with self.handles_lock:
            if handle in self.handles:
                self.handles.remove(handle)
            if not self.handles:
                self.start_time = None

    def active(self) -> List[SupervisionHandle]:
        """Returns the handles whose Outcome is not known yet."""
        with self.handles_lock:
            return [h for h in self.handles if not h.done()]

    def is_running(self) -> bool:
        return bool(self.active())

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Cancels every active launch and waits for the workers to finish.

        Cancelling terminates each child process tree, so no backend outlives the shell.

        :param timeout: Overall bound on the wait, defaults to twice the graceful shutdown timeout.
        """
        active = self.active()
        if not active:
            log.debug("No supervised processes to stop.")
            return

        log.info(f"Initiating graceful shutdown for {len(active)} supervised processes...")
        for handle in active:
            handle.cancel("shell shutdown")

        budget = timeout if timeout is not None else config.GRACEFUL_SHUTDOWN_TIMEOUT * 2
        deadline = time.monotonic() + budget
        for handle in active:
            if not handle.join(max(deadline - time.monotonic(), 0)):
                log.error(f"Supervisor for '{handle.name}' (PID {handle.pid}) did not finish within {budget}s.")
        log.info("Supervised process shutdown completed.")
