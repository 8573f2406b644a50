from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Callable, Optional

from workunit.base.resource import TransactionResource
from workunit.exception import WorkUnitError
from workunit.unit_of_work import UnitOfWork

try:
    from starlette.applications import Starlette

    STARLETTE_INSTALLED = True
except ModuleNotFoundError:
    STARLETTE_INSTALLED = False
    Starlette = type("Starlette", (), {})  # type: ignore

logger = logging.getLogger(__name__)

_current: ContextVar[Optional[UnitOfWork]] = ContextVar(
    "unit_of_work", default=None
)


def current_unit_of_work() -> UnitOfWork:
    """Fetch the unit of work bound to the request being handled

    Raises:
        WorkUnitError: If called outside of a request

    Returns:
        UnitOfWork: The request's unit of work
    """
    uow = _current.get()
    if uow is None:
        raise WorkUnitError("No unit of work is bound to the current context")
    return uow


class UnitOfWorkMiddleware:
    """ASGI middleware giving every HTTP request its own declared work
    scope. Work is committed right before a successful response starts and
    discarded for error responses."""

    def __init__(
        self,
        app,
        factory: Callable[[], UnitOfWork],
        resource: Optional[TransactionResource] = None,
    ):
        self.app = app
        self.factory = factory
        self.resource = resource

    async def __call__(self, scope, receive, send):
        if scope["type"] == "lifespan":
            return await self._lifespan(scope, receive, send)
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        uow = self.factory()
        uow.begin_work()
        token = _current.set(uow)

        async def send_wrapper(message):
            if message["type"] == "http.response.start" and uow.is_active:
                if message["status"] < 400:
                    await uow.commit_work()
                else:
                    logger.debug(
                        "Discarding work for %s response", message["status"]
                    )
                    uow.discard_work()
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            uow.discard_work()
            raise
        finally:
            _current.reset(token)

    async def _lifespan(self, scope, receive, send):
        async def receive_wrapper():
            message = await receive()
            if self.resource is not None:
                if message["type"] == "lifespan.startup":
                    await self.resource.open()
                elif message["type"] == "lifespan.shutdown":
                    await self.resource.close()
            return message

        await self.app(scope, receive_wrapper, send)


class StarletteWorkExtension:
    def __init__(
        self,
        *,
        factory: Callable[[], UnitOfWork],
        resource: Optional[TransactionResource] = None,
        app: Optional[Starlette] = None,
    ):
        if not STARLETTE_INSTALLED:
            raise WorkUnitError(
                "Could not locate Starlette. It must be installed to use "
                "StarletteWorkExtension. Try: pip install starlette"
            )
        self.factory = factory
        self.resource = resource
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Starlette) -> None:
        app.add_middleware(
            UnitOfWorkMiddleware, factory=self.factory, resource=self.resource
        )
