"""
The Supervisor Task.

`supervise` starts a backend process on a dedicated worker thread, waits for it
to exit and delivers exactly one Outcome to a StatusSink. The caller gets a
SupervisionHandle back immediately and may poll, await, join or cancel it.
"""

import time
import logging
import threading
import subprocess
from concurrent.futures import Future
from typing import Callable, Optional

from backend_shell.local.config import effective_settings as config
from .launch_config import LaunchConfig
from .outcome import Outcome, ExitFailure, LaunchError, outcome_from_returncode
from .process_utils import OutputCollector, spawn_process
from .shutdown import terminate_process_tree
from .status import LoggingStatusSink, StatusSink

log = logging.getLogger(__name__)


class SupervisionHandle:
    """Caller-side view of one supervised launch."""

    def __init__(
        self,
        name: str,
        launch_config: Optional[LaunchConfig],
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.name = name
        self.config = launch_config
        self.pid: Optional[int] = None
        self.cancel_reason: Optional[str] = None
        # The caller's event may be shared between launches; stopping this one only sets _stop_event.
        self._cancel_event = cancel_event or threading.Event()
        self._stop_event = threading.Event()
        self._future: "Future[Outcome]" = Future()
        self._thread: Optional[threading.Thread] = None

    @property
    def cancel_requested(self) -> bool:
        return self._stop_event.is_set() or self._cancel_event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        """Asks the worker to stop: before spawn nothing is started, during the wait the process tree is terminated."""
        if not self._stop_event.is_set():
            self.cancel_reason = reason
            self._stop_event.set()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> Outcome:
        """
        Blocks until the Outcome is known.

        :raises concurrent.futures.TimeoutError: If it is not known within `timeout` seconds.
        """
        return self._future.result(timeout)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Waits for the worker thread; returns True if it has finished."""
        if self._thread is not None:
            self._thread.join(timeout)
            return not self._thread.is_alive()
        return self.done()

    def add_done_callback(self, fn: Callable[["SupervisionHandle"], None]) -> None:
        self._future.add_done_callback(lambda _: fn(self))

    def __repr__(self) -> str:
        state = "done" if self.done() else ("running" if self.pid else "pending")
        return f"<SupervisionHandle {self.name} pid={self.pid} {state}>"


def _wait_for_exit(
    handle: SupervisionHandle,
    process: subprocess.Popen,
    deadline: Optional[float],
) -> int:
    """Waits for the process in slices, honouring cancellation and the deadline."""
    while True:
        try:
            return process.wait(timeout=config.WAIT_POLL_INTERVAL)
        except subprocess.TimeoutExpired:
            pass

        if deadline is not None and time.monotonic() >= deadline:
            handle.cancel("deadline exceeded")
        if handle.cancel_requested:
            log.warning(f"Stopping '{handle.name}' (PID {process.pid}): {handle.cancel_reason or 'cancel requested'}.")
            return terminate_process_tree(process, config.GRACEFUL_SHUTDOWN_TIMEOUT)


def _run_supervised(
    handle: SupervisionHandle,
    sink: StatusSink,
    timeout: Optional[float],
) -> None:
    """Worker body. Produces and delivers exactly one Outcome."""
    outcome: Optional[Outcome] = None
    diagnostics: Optional[str] = None
    process: Optional[subprocess.Popen] = None
    collector: Optional[OutputCollector] = None

    try:
        if handle.cancel_requested:
            outcome = LaunchError("launch cancelled before spawn")
            return

        log.info(f"Starting process: {handle.name} -> {handle.config.describe()}")
        try:
            process = spawn_process(handle.config)
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            outcome = LaunchError(str(e) or type(e).__name__)
            return

        handle.pid = process.pid
        log.info(f"{handle.name.capitalize()} started with PID: {process.pid}")
        collector = OutputCollector(process, handle.name, config.STDERR_TAIL_LINES)

        deadline = time.monotonic() + timeout if timeout else None
        returncode = _wait_for_exit(handle, process, deadline)
        collector.drain(config.PIPE_DRAIN_TIMEOUT)
        outcome = outcome_from_returncode(returncode)
        diagnostics = collector.diagnostics()
    except Exception as e:
        log.critical(f"Supervisor for '{handle.name}' failed unexpectedly: {e}", exc_info=True)
        if process is None:
            outcome = LaunchError(f"supervisor error: {e}")
        else:
            try:
                outcome = outcome_from_returncode(
                    terminate_process_tree(process, config.GRACEFUL_SHUTDOWN_TIMEOUT)
                )
            except Exception as stop_error:
                log.error(f"Could not stop '{handle.name}' (PID {process.pid}): {stop_error}", exc_info=True)
                outcome = ExitFailure(process.returncode or -1)
            diagnostics = collector.diagnostics() if collector else None
    finally:
        _deliver(handle, sink, outcome or LaunchError("no outcome produced"), diagnostics)


def _deliver(
    handle: SupervisionHandle,
    sink: StatusSink,
    outcome: Outcome,
    diagnostics: Optional[str],
) -> None:
    """Reports to the sink, then resolves the handle. A failing sink never blocks the handle."""
    try:
        sink.report(handle.name, outcome, diagnostics)
    except Exception as e:
        log.error(f"Status sink failed while reporting '{handle.name}': {e}", exc_info=True)
    handle._future.set_result(outcome)


def failed_launch(
    name: str,
    outcome: Outcome,
    sink: Optional[StatusSink] = None,
    launch_config: Optional[LaunchConfig] = None,
) -> SupervisionHandle:
    """
    Reports a launch that failed before a worker could be dispatched.

    :return: An already resolved SupervisionHandle carrying `outcome`.
    """
    handle = SupervisionHandle(name, launch_config)
    _deliver(handle, sink or LoggingStatusSink(), outcome, None)
    return handle


def supervise(
    launch_config: LaunchConfig,
    sink: Optional[StatusSink] = None,
    cancel_event: Optional[threading.Event] = None,
    timeout: Optional[float] = None,
    name: str = "backend",
) -> SupervisionHandle:
    """
    Dispatches a supervised launch on its own worker thread and returns at once.

    :param launch_config: What to run.
    :param sink: Where the Outcome is reported; defaults to a LoggingStatusSink.
    :param cancel_event: Optional externally owned event that cancels the launch.
    :param timeout: Optional deadline in seconds, counted from spawn.
    :param name: The logical name used in logs and reports.
    :return: A SupervisionHandle for the dispatched launch.
    """
    handle = SupervisionHandle(name, launch_config, cancel_event)
    worker = threading.Thread(
        target=_run_supervised,
        args=(handle, sink or LoggingStatusSink(), timeout),
        daemon=True,
        name=f"{name}-supervisor",
    )
    handle._thread = worker
    worker.start()
    return handle
