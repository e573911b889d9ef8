import time
import shutil
import psutil
import logging
from pathlib import Path
from typing import List, Optional

from backend_shell.local.config import ConfigurationError, effective_settings as config
from backend_shell.local.supervisor import BackendSupervisor, LaunchConfig, bootstrap, supervise

log = logging.getLogger(__name__)
supervisor = BackendSupervisor()


def start_backend() -> None:
    """Runs the shell startup hook unless a backend is already supervised."""
    if supervisor.is_running():
        log.error("Backend appears to be running. Use 'stop' first.")
        return
    bootstrap(supervisor)


def stop_backend() -> None:
    """Stops every supervised backend process."""
    supervisor.shutdown()


def handle_launch_command(args: List[str]) -> None:
    """
    Launches an arbitrary command under supervision and waits for its Outcome.

    :param args: The executable followed by its arguments.
    """
    if not args:
        print("Usage: launch <executable> [arguments...]")
        return
    launch_config = LaunchConfig.from_anchor(args[0], args[1:], config.BACKEND_WORKDIR, config.BACKEND_ROOT)
    handle = supervise(launch_config, name=Path(args[0]).name)
    try:
        outcome = handle.result()
    except KeyboardInterrupt:
        handle.cancel("interrupted by user")
        outcome = handle.result()
    print(f"{handle.name}: {outcome.describe()}")


def display_status() -> None:
    """Shows the supervised processes and their resource usage."""
    active = supervisor.active()
    if not active:
        print("\nBackend is STOPPED.\n")
        return

    print("\n--- Backend Status ---")
    for handle in active:
        if handle.pid is None:
            print(f"  - {handle.name:<25} : starting")
            continue
        try:
            p = psutil.Process(handle.pid)
            cpu = p.cpu_percent(interval=0.1)
            mem = p.memory_info().rss
            print(f"  - {handle.name:<25} : PID {handle.pid:<8} | Status: {p.status().upper()} | CPU: {cpu:.1f}% | MEM: {mem/1024/1024:.1f} MB")
        except psutil.NoSuchProcess:
            print(f"  - {handle.name:<25} : PID {handle.pid:<8} | Status: EXITING")
        except psutil.AccessDenied:
            print(f"  - {handle.name:<25} : PID {handle.pid:<8} | Status: RUNNING (Access Denied)")

    if supervisor.start_time:
        print(f"Runtime: {time.strftime('%H:%M:%S', time.gmtime(time.time() - supervisor.start_time))}")
    print("-" * 22 + "\n")


def check_configuration() -> bool:
    """
    Validates that the backend root and executable can be found.

    :return: True if both are found, otherwise False.
    """
    log.info("Performing configuration and path validation...")
    all_ok = True

    root = Path(config.BACKEND_ROOT).expanduser()
    if root.is_dir():
        log.info(f"Config Check OK: Backend root '{root}'")
    else:
        log.error(f"CONFIG CHECK FAILED: Backend root '{root}' is not a directory")
        all_ok = False

    executable: Optional[str] = shutil.which(config.BACKEND_EXECUTABLE)
    if executable:
        log.info(f"Config Check OK: Found {config.BACKEND_EXECUTABLE} at '{executable}'")
    else:
        log.error(f"CONFIG CHECK FAILED: {config.BACKEND_EXECUTABLE} not found on PATH")
        all_ok = False

    try:
        config.backend_arguments()
        config.launch_timeout()
    except ConfigurationError as e:
        log.error(f"CONFIG CHECK FAILED: {e}")
        all_ok = False
    return all_ok


def _config_show():
    """Displays the current modifiable configuration settings."""
    print("\n--- Current Backend Configuration ---")
    for key, value in config.modifiable_items().items():
        print(f"  {key} = {value}")
    print("---")
    print("Use 'config set <KEY> <VALUE>' to change a setting.")
    print("A restart is required for changes to apply to a running backend.")
    print("-------------------------------------\n")

def _config_set(args: List[str]):
    """Sets a configuration setting and persists it to the overrides file."""
    if len(args) < 2:
        print("Usage: config set <SETTING_NAME> <VALUE>")
        return

    key, value_str = args[0].upper(), " ".join(args[1:])
    try:
        config.set(key, value_str)
    except ConfigurationError as e:
        print(f"Error: {e}")
        return
    config.save_overrides(config.modifiable_items())
    print(f"Setting '{key}' updated to '{config.get(key)}'.")

def _config_help():
    """Displays help for the config command."""
    print("\nConfig Command Help:")
    print("  config show                - Display all modifiable settings.")
    print("  config set KEY VALUE       - Change a setting. Requires a restart to apply.")
    print("  config help                - Show this help message.")
    print("Use 'check-config' to validate the backend root and executable.")

def handle_config_command(args: List[str]) -> None:
    """
    Handles all sub-commands for the 'config' command-line interface.

    :param args: A list of string arguments following the 'config' command.
    """
    sub_command = args[0].lower() if args else "show"

    if sub_command == "show":
        _config_show()
    elif sub_command == "set":
        _config_set(args[1:])
    elif sub_command == "help":
        _config_help()
    else:
        print(f"Unknown config sub-command: '{sub_command}'. Type 'config help' for available commands.")

def toggle_verbose_logging() -> None:
    """Toggles verbose (DEBUG level) logging for the console handler."""
    config.VERBOSE_LOGGING = not config.VERBOSE_LOGGING
    new_level = logging.DEBUG if config.VERBOSE_LOGGING else logging.INFO

    # Reconfigure the console handler's level directly
    root_logger = logging.getLogger()
    found_handler = False
    for handler in root_logger.handlers:
        if type(handler) is logging.StreamHandler:
            handler.setLevel(new_level)
            found_handler = True
            break

    status = "ON" if config.VERBOSE_LOGGING else "OFF"
    if found_handler:
        print(f"Verbose console logging is now {status}.")
        log.debug("Debug logging test: This message should only appear when verbose is ON.")
    else:
        print("Could not find console handler to modify level.")

def print_help():
    """Prints the main help text for the console."""
    print("\nAvailable commands:")
    print("  start                  - Launch the backend in the background.")
    print("  stop                   - Stop the backend and its child processes.")
    print("  restart                - Stop and then relaunch the backend.")
    print("  status                 - Show the current status of the backend.")
    print("  launch <cmd> [args]    - Run a command under supervision and wait for its outcome.")
    print("  check-config           - Validate the backend root and executable.")
    print("  config <cmd>           - Manage configuration. Use 'config help' for more details.")
    print("  verbose                - Toggle detailed DEBUG log output in the console.")
    print("  exit                   - Stop the backend and exit the console.")
    print()
