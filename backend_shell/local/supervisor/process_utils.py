import sys
import logging
import threading
import subprocess
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from .launch_config import LaunchConfig

log = logging.getLogger(__name__)


#* --- Process Creation ---
def _get_popen_creation_flags() -> Dict[str, Any]:
    """Returns platform-specific keyword arguments for subprocess.Popen."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP | subprocess.CREATE_NO_WINDOW}
    # A separate session lets the whole backend tree be signalled without touching the shell.
    return {"start_new_session": True}


def spawn_process(config: LaunchConfig) -> subprocess.Popen:
    """
    Starts the process described by `config` with piped output.

    :param config: The launch configuration.
    :return: The started Popen object.
    :raises OSError: If the executable or working directory cannot be used.
    """
    return subprocess.Popen(
        config.command,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=subprocess.DEVNULL,
        cwd=str(config.working_directory),
        **_get_popen_creation_flags(),
    )


#* --- Output Handling ---
def _read_pipe(pipe, process_name: str, level: int, tail: Optional[Deque[str]] = None) -> None:
    """Target function for reader threads. Reads and logs lines from a subprocess pipe."""
    proc_logger = logging.getLogger(f"proc.{process_name}")
    try:
        for line_bytes in iter(pipe.readline, b""):
            line = line_bytes.decode("utf-8", errors="replace").rstrip()
            if not line:
                continue
            if tail is not None:
                tail.append(line)
            proc_logger.log(level, line)
    except (OSError, ValueError) as e:
        proc_logger.debug(f"Pipe reader for {process_name} stream exited: {e}")
    finally:
        pipe.close()


class OutputCollector:
    """Consumes a process's stdout/stderr in daemon threads and keeps the stderr tail."""

    def __init__(self, process: subprocess.Popen, name: str, tail_lines: int) -> None:
        self.stderr_tail: Deque[str] = deque(maxlen=max(tail_lines, 1))
        self._threads: List[threading.Thread] = []
        if process.stdout:
            self._start(process.stdout, name, logging.INFO, None, "stdout")
        if process.stderr:
            self._start(process.stderr, name, logging.ERROR, self.stderr_tail, "stderr")

    def _start(self, pipe, name: str, level: int, tail: Optional[Deque[str]], stream: str) -> None:
        thread = threading.Thread(
            target=_read_pipe,
            args=(pipe, name, level, tail),
            daemon=True,
            name=f"{name}-{stream}-reader",
        )
        thread.start()
        self._threads.append(thread)

    def drain(self, timeout: float) -> None:
        """
        Waits for the reader threads to reach end-of-file.

        Grandchildren that inherited the pipes can keep them open, so the wait is bounded.
        """
        for thread in self._threads:
            thread.join(timeout)
            if thread.is_alive():
                log.debug(f"Output reader {thread.name} still running after {timeout}s.")

    def diagnostics(self) -> Optional[str]:
        """Returns the captured stderr tail, or None if nothing was written."""
        return "\n".join(self.stderr_tail) if self.stderr_tail else None
