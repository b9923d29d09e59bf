"""
cas_authz.plugin.base

Host plugin contract.

Responsibilities:
- Define the handler/middleware callable shapes used across the chain.
- Define the `Plugin` interface the host drives (initialize/update/priority/process).
- Provide the reader/writer lock guarding a plugin's active middleware.
"""

from __future__ import annotations

import abc
import threading
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import Any

from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import Response
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

Handler = Callable[[Request], Awaitable[Response]]
Middleware = Callable[[Handler], Handler]


class Plugin(abc.ABC):
    """
    A unit the host loads into its plugin chain.

    The host calls `process` once per request to obtain the effective handler
    and may call `update` at any time (from any thread) with a new config.
    """

    @abc.abstractmethod
    def initialize(self) -> None: ...

    @abc.abstractmethod
    def update(self, config: Any) -> None: ...

    @abc.abstractmethod
    def priority(self) -> int: ...

    @abc.abstractmethod
    def process(self, next_handler: Handler) -> Handler: ...


class RWLock:
    """
    Many readers or a single writer.

    A waiting writer blocks new readers so reloads are not starved under load.
    Not reentrant.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def internal_error_middleware(_: Handler) -> Handler:
    async def handler(request: Request) -> Response:
        raise HTTPException(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal Server Error"
        )

    return handler


# --- Module Notes -----------------------------------------------------------
# `Handler`/`Middleware` follow the `call_next` shape of Starlette's
# BaseHTTPMiddleware, so the host's `call_next` can terminate any chain.
