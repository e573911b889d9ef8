"""
This module contains the configuration settings for the Backend Shell application.
It defines paths, the backend launch command, supervision timings and logging options.
It is used throughout the application to ensure consistent settings and paths.
"""

import os
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=True)

#* --- Core Paths ---
BASE_DIR = pathlib.Path(__file__).resolve().parent.parent  # Project Root
LOGS_DIR = BASE_DIR / "logs"
OVERRIDES_JSON_PATH = BASE_DIR / "overrides.json"

#* --- Backend Launch ---
# The anchor every backend working directory is resolved against.
BACKEND_ROOT = pathlib.Path(os.getenv("BACKEND_ROOT", str(BASE_DIR))).expanduser()
BACKEND_EXECUTABLE = os.getenv("BACKEND_EXECUTABLE", "go")
# Shell-style string, split once by the config layer.
BACKEND_ARGS = os.getenv("BACKEND_ARGS", "run cmd/voidspark/main.go")
BACKEND_WORKDIR = os.getenv("BACKEND_WORKDIR", ".")
BACKEND_NAME = "backend"
BACKEND_LAUNCH_TIMEOUT = os.getenv("BACKEND_LAUNCH_TIMEOUT", "0")  # seconds, 0 disables the deadline

#* --- Supervisor Settings ---
WAIT_POLL_INTERVAL = 0.2       # seconds between cancellation checks while waiting on the child
GRACEFUL_SHUTDOWN_TIMEOUT = 10 # seconds before force-killing
STDERR_TAIL_LINES = 50
PIPE_DRAIN_TIMEOUT = 2         # seconds to wait for output readers after exit

#* --- Logging ---
LOG_FILE_PATH = pathlib.Path(os.environ["LOG_FILE_PATH"]) if os.getenv("LOG_FILE_PATH") else None
VERBOSE_LOGGING = os.getenv("VERBOSE_LOGGING", "False").lower() in ('true', '1', 't')

#* --- Process ---
PROCESS_TITLE = "Backend Shell"

#* --- MODIFIABLE SETTINGS (Changeable at runtime via 'config' command) ---
MODIFIABLE_SETTINGS = {
    "BACKEND_EXECUTABLE", "BACKEND_ARGS", "BACKEND_WORKDIR", "BACKEND_ROOT",
    "BACKEND_LAUNCH_TIMEOUT", "GRACEFUL_SHUTDOWN_TIMEOUT", "STDERR_TAIL_LINES",
}
