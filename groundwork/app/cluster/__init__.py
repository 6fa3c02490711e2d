"""
Master/worker topology: supervisor, worker runtime, IPC and privilege drop.
"""

from .ipc import ExitMessage, ReadyMessage, decode
from .privileges import drop_privileges
from .supervisor import MasterState, Supervisor, WorkerHandle
from .worker import WorkerRuntime, run_worker

__all__ = [
    "ExitMessage",
    "MasterState",
    "ReadyMessage",
    "Supervisor",
    "WorkerHandle",
    "WorkerRuntime",
    "decode",
    "drop_privileges",
    "run_worker",
]
