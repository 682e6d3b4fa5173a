"""Background execution of rhyme queries and the client that talks to it."""

from .client import RhymeWorkerClient, WorkerClientState
from .singleton import (
    get_rhyme_client,
    get_rhyme_client_status,
    init_rhyme_client,
    reset_rhyme_client,
)
from .worker import RhymeWorker

__all__ = [
    "RhymeWorker",
    "RhymeWorkerClient",
    "WorkerClientState",
    "get_rhyme_client",
    "get_rhyme_client_status",
    "init_rhyme_client",
    "reset_rhyme_client",
]
