"""
The Supervisor package.
Launches the backend process without blocking the shell and reports how it ended.

This package contains the launch configuration, the outcome types, the status
sinks, the supervisor task itself and the BackendSupervisor registry used by
the shell's startup hook.
"""
from .launch_config import LaunchConfig
from .outcome import Outcome, Success, ExitFailure, LaunchError
from .status import StatusSink, LoggingStatusSink, CallbackStatusSink, CompositeStatusSink
from .task import SupervisionHandle, supervise
from .supervisor import BackendSupervisor
from .startup import bootstrap

__all__ = [
    'LaunchConfig',
    'Outcome', 'Success', 'ExitFailure', 'LaunchError',
    'StatusSink', 'LoggingStatusSink', 'CallbackStatusSink', 'CompositeStatusSink',
    'SupervisionHandle', 'supervise',
    'BackendSupervisor',
    'bootstrap',
]
