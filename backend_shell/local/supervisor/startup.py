import atexit
import logging
from pathlib import Path
from typing import Optional

from backend_shell.local.config import ConfigurationError, MergedSettings, effective_settings
from .launch_config import LaunchConfig
from .status import StatusSink
from .supervisor import BackendSupervisor
from .outcome import LaunchError
from .task import SupervisionHandle, failed_launch

log = logging.getLogger(__name__)

_exit_hook_registered = False


def resolve_backend_root(settings: MergedSettings) -> Path:
    """
    Resolves the configured backend root once, at configuration time.

    A missing root is only warned about; the spawn reports it as a LaunchError.

    :param settings: The merged settings object.
    :return: The absolute backend root.
    """
    root = Path(settings.BACKEND_ROOT).expanduser().absolute()
    if not root.is_dir():
        log.warning(f"Backend root '{root}' is not an existing directory. The backend launch will fail.")
    settings.BACKEND_ROOT = root
    return root


def _register_exit_hook(supervisor: BackendSupervisor) -> None:
    """Registers (once) an interpreter exit hook that stops every supervised backend."""
    global _exit_hook_registered
    if _exit_hook_registered:
        return
    atexit.register(supervisor.shutdown)
    _exit_hook_registered = True


def bootstrap(
    supervisor: Optional[BackendSupervisor] = None,
    launch_config: Optional[LaunchConfig] = None,
    sink: Optional[StatusSink] = None,
    settings: Optional[MergedSettings] = None,
) -> SupervisionHandle:
    """
    The shell's one-time startup hook.

    Builds the backend launch from settings unless one is injected, dispatches it and
    returns without waiting for the backend.

    :param supervisor: The registry to launch through; defaults to the shared BackendSupervisor.
    :param launch_config: An explicit launch configuration.
    :param sink: Where the backend Outcome is reported.
    :param settings: Settings to read the launch and deadline from.
    :return: The handle of the dispatched backend launch. Malformed backend settings
        yield a handle already resolved to a LaunchError.
    """
    settings = settings or effective_settings
    supervisor = supervisor or BackendSupervisor()

    try:
        if launch_config is None:
            resolve_backend_root(settings)
            launch_config = LaunchConfig.from_settings(settings)
        timeout = settings.launch_timeout()
    except ConfigurationError as e:
        log.error(f"Backend launch not dispatched: {e}")
        return failed_launch(settings.BACKEND_NAME, LaunchError(str(e)), sink, launch_config)

    _register_exit_hook(supervisor)
    handle = supervisor.launch(
        launch_config,
        sink=sink,
        timeout=timeout,
        name=settings.BACKEND_NAME,
    )
    log.info("Shell ready. Backend launch dispatched.")
    return handle
