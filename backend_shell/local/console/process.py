import logging
from typing import List

from backend_shell.local.console.handler import (
    check_configuration, display_status, handle_config_command, handle_launch_command,
    print_help, start_backend, stop_backend, toggle_verbose_logging,
)

log = logging.getLogger(__name__)


def execute_command(command: str, args: List[str]) -> bool:
    """
    Executes a single command from the user.

    :param command: The main command string (e.g., 'start', 'config').
    :param args: A list of arguments for the command.
    :return bool: True if the console should exit, False otherwise.
    """
    log.debug(f"Executing command: {command}, args: {args}")
    command_map = {
        "start": start_backend,
        "stop": stop_backend,
        "shutdown": stop_backend, # Foolproof alias
        "status": display_status,
        "launch": lambda: handle_launch_command(args),
        "check-config": check_configuration,
        "config": lambda: handle_config_command(args),
        "verbose": toggle_verbose_logging,
        "help": print_help,
    }

    if command == "exit":
        stop_backend()
        return True

    if command in command_map:
        command_map[command]()
    elif command == "restart":
        log.info("Stopping backend...")
        stop_backend()
        log.info("Starting backend...")
        start_backend()
    else:
        log.info(f"Unknown command: '{command}'. Type 'help' for a list of commands.")

    return False
