import sys
import logging
import threading

# Basic console logger for messages BEFORE full setup is complete.
# This logger will be replaced by the full setup later.
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)-8s - [console] - %(message)s',
    stream=sys.stdout
)
log = logging.getLogger("console")

import setproctitle

import backend_shell.local.console as console
from backend_shell.local import effective_settings as config
from backend_shell.log.setup import setup_logging
from backend_shell.local.supervisor import BackendSupervisor

# --- Global State ---
CONSOLE_LOCK = threading.Lock()
supervisor = BackendSupervisor()


def _wait_for_backend() -> None:
    """Keeps a one-off 'start' in the foreground until the backend exits or Ctrl+C."""
    try:
        for handle in supervisor.active():
            handle.join()
    except KeyboardInterrupt:
        log.warning("Interrupted. Stopping backend...")
    finally:
        supervisor.shutdown()


def main() -> None:
    """The main entry point for the console application."""
    setproctitle.setproctitle(config.PROCESS_TITLE)
    setup_logging(logging.DEBUG if config.VERBOSE_LOGGING else logging.INFO)

    # Non-interactive mode for one-off commands
    if len(sys.argv) > 1:
        command, args = sys.argv[1].lower(), sys.argv[2:]
        if "--verbose" in args:
            console.toggle_verbose_logging()
            args.remove("--verbose")

        console.execute_command(command, args)
        if command in ("start", "restart"):
            _wait_for_backend()
        return

    # Interactive mode
    print("--- Backend Shell Console ---")
    print("Type 'help' for a list of commands.")

    # The shell's startup hook: the backend boots while the console is already usable.
    console.execute_command("start", [])

    while True:
        try:
            # The input prompt must be outside the lock to not block background threads
            command_line_str = input("> ")
            with CONSOLE_LOCK:
                if not command_line_str.strip():
                    continue
                command_line = command_line_str.strip().split()

                command, args = command_line[0].lower(), command_line[1:]

                log.debug(f"Received command: {command}, args: {args}")

                if console.execute_command(command, args):
                    break

        except (KeyboardInterrupt, EOFError):
            with CONSOLE_LOCK:
                log.warning("\nExiting console. Stopping backend...")
                supervisor.shutdown()
                break
        except Exception as e:
            with CONSOLE_LOCK:
                log.error(f"An unexpected error occurred in the console: {e}", exc_info=True)

if __name__ == "__main__":
    main()
    print("Exiting Backend Shell. See you next time!")
