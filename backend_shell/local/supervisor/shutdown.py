import psutil
import logging
import subprocess
from typing import List, Set

log = logging.getLogger(__name__)


def identify_descendants(pid: int) -> Set[psutil.Process]:
    """
    Collects all descendants of a process.

    :param pid: The PID of the supervised process.
    :return: A set of psutil.Process objects, empty if the process is gone.
    """
    try:
        return set(psutil.Process(pid).children(recursive=True))
    except psutil.NoSuchProcess:
        log.debug(f"Process {pid} no longer exists, skipping children retrieval.")
        return set()


def _terminate_processes(processes: Set[psutil.Process]) -> None:
    """Sends SIGTERM to all processes."""
    for proc in processes:
        try:
            log.debug(f"Sending SIGTERM to {proc.name()} (PID {proc.pid})")
            proc.terminate()
        except psutil.NoSuchProcess:
            log.debug(f"Process {proc.pid} no longer exists, skipping termination.")
            continue


def _forceful_kill(processes: List[psutil.Process]) -> None:
    """Forcefully kills processes that didn't terminate gracefully."""
    if not processes:
        return

    log.warning(f"{len(processes)} processes did not terminate gracefully. Forcing shutdown...")
    for proc in processes:
        try:
            log.warning(f"Killing stubborn process {proc.name()} (PID {proc.pid}).")
            proc.kill()
        except psutil.NoSuchProcess:
            log.debug(f"Process {proc.pid} no longer exists, skipping forceful kill.")
            continue


def terminate_process_tree(process: subprocess.Popen, timeout: float) -> int:
    """
    Terminates a supervised process and its descendants.

    The direct child is signalled and reaped through its Popen object so its real
    exit status is preserved; descendants are handled through psutil. Anything still
    alive after `timeout` seconds is killed.

    :param process: The Popen object of the supervised process.
    :param timeout: Seconds to wait after SIGTERM before sending SIGKILL.
    :return: The exit status of the direct child.
    """
    if process.poll() is not None:
        return process.returncode

    descendants = identify_descendants(process.pid)
    log.info(f"Terminating PID {process.pid} and {len(descendants)} descendant processes...")
    try:
        process.terminate()
    except ProcessLookupError:
        pass
    _terminate_processes(descendants)

    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        log.warning(f"Process {process.pid} did not terminate gracefully. Killing it.")
        process.kill()
        process.wait()

    try:
        _, alive = psutil.wait_procs(list(descendants), timeout=timeout)
    except psutil.NoSuchProcess:
        alive = []
    _forceful_kill(alive)
    return process.returncode
