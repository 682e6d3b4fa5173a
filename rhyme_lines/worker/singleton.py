"""Process-wide access to a single rhyme worker client."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Any, Optional

from .client import RhymeWorkerClient, WorkerClientState

_client: Optional[RhymeWorkerClient] = None
_lock = threading.Lock()


def get_rhyme_client(**client_kwargs: Any) -> RhymeWorkerClient:
    """Return the shared client, creating it on first use.

    ``client_kwargs`` only apply when a client is created. A terminated
    client is replaced, since reloading the dictionary needs a new instance.
    """

    global _client
    with _lock:
        if _client is None or _client.get_status() is WorkerClientState.TERMINATED:
            _client = RhymeWorkerClient(**client_kwargs)
        return _client


def init_rhyme_client(**client_kwargs: Any) -> "Future[None]":
    return get_rhyme_client(**client_kwargs).init()


def get_rhyme_client_status() -> Optional[WorkerClientState]:
    with _lock:
        return _client.get_status() if _client is not None else None


def reset_rhyme_client() -> None:
    """Terminate and forget the shared client."""

    global _client
    with _lock:
        client, _client = _client, None
    if client is not None:
        client.terminate()


__all__ = [
    "get_rhyme_client",
    "get_rhyme_client_status",
    "init_rhyme_client",
    "reset_rhyme_client",
]
