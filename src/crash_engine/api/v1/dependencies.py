"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from crash_engine.services.batch_controller import BatchController, get_batch_controller
from crash_engine.services.notifier import SocketServerClient, get_socket_client
from crash_engine.services.round_store import SqlRoundStore


def get_round_store() -> SqlRoundStore:
    """Return a round store bound to the application session factory."""
    return SqlRoundStore()


RoundStoreDep = Annotated[SqlRoundStore, Depends(get_round_store)]
ControllerDep = Annotated[BatchController, Depends(get_batch_controller)]
SocketClientDep = Annotated[SocketServerClient, Depends(get_socket_client)]
