# rpcmount/server/rpc.py
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional

import anyio
import uvicorn
from fastapi import FastAPI, Response

from rpcmount.config.settings import RPCSettings, configure_logging
from rpcmount.server.auth import Validator, allow_all
from rpcmount.server.cookies import install_cookie_parser
from rpcmount.server.dispatcher import RPCDispatcher
from rpcmount.server.registry import MethodRegistry, RPCHandler
from rpcmount.server.renderers import ErrorRendererRegistry, Renderer
from rpcmount.transport.http import HTTPTransport


class RPC:
    """
    One RPC endpoint set: its own method registry, error renderers and
    validator. Several instances can live in the same process.

        rpc = RPC()

        @rpc.register()
        def add(meta, a, b):
            return a + b

        rpc.mount(app)
    """

    def __init__(
        self,
        validator: Validator | None = None,
        settings: RPCSettings | dict | None = None,
    ):
        self._settings = RPCSettings.coerce(settings)
        self.methods = MethodRegistry()
        self.renderers = ErrorRendererRegistry()
        self._dispatcher = RPCDispatcher(self.methods, self.renderers, validator)
        self._transport = HTTPTransport(self._dispatcher, self._settings)
        self._app: FastAPI | None = None
        self._logger = logging.getLogger("rpcmount.rpc")

        configure_logging(self._settings.log_level)

    # ───── Properties ─────
    @property
    def settings(self) -> RPCSettings:
        return self._settings

    @property
    def dispatcher(self) -> RPCDispatcher:
        return self._dispatcher

    @property
    def validator(self) -> Validator:
        return self._dispatcher.validator

    @validator.setter
    def validator(self, validator: Validator | None) -> None:
        self._dispatcher.validator = validator or allow_all

    # ───── Registration ─────
    def add(self, handler: RPCHandler, name: str | None = None, description: str | None = None) -> None:
        self.methods.add(handler, name=name, description=description)

    def register(self, name: str | None = None, description: str | None = None):
        return self.methods.register(name=name, description=description)

    def add_error_renderer(self, label: str, renderer: Renderer) -> None:
        self.renderers.add(label, renderer)

    def error_renderer(self, label: str):
        return self.renderers.register(label)

    def dump(self) -> list[str]:
        return self.methods.list()

    async def dispatch(self, payload: Any, request: Any = None, response: Optional[Response] = None):
        return await self._dispatcher.dispatch(payload, request, response)

    # ───── Mounting ─────
    def mount(self, app: FastAPI) -> None:
        base = self._settings.base_path
        if self._settings.install_cookie_parser:
            install_cookie_parser(app)

        app.post(f"{base}/call")(self._transport.handle)
        app.get(f"{base}/discover")(self._transport.discover)
        self._logger.info(f"Mounted RPC endpoints at {base or '/'}")

    @property
    def app(self) -> FastAPI:
        """Standalone FastAPI app with only the RPC endpoints."""
        if self._app is None:
            app = FastAPI(title=self._settings.title)
            self.mount(app)
            self._app = app
        return self._app

    # ───── Standalone runner ─────
    def run(self, *, host: str | None = None, port: int | None = None) -> None:
        host = host or self._settings.host
        port = port or self._settings.port
        anyio.run(self._run_http_async, host, port)

    async def _run_http_async(self, host: str, port: int):
        config = uvicorn.Config(
            self.app,
            host=host,
            port=port,
            log_level=self._settings.log_level.lower() if isinstance(self._settings.log_level, str) else "info",
        )
        server = uvicorn.Server(config)
        self._logger.info(f"Starting HTTP server at http://{host}:{port}{self._settings.base_path}")
        await server.serve()


def create_rpc(
    app: FastAPI,
    path: str | None = None,
    validator: Validator | None = None,
    settings: RPCSettings | dict | None = None,
) -> RPC:
    """Mount a fresh ``RPC`` on an existing FastAPI application."""
    settings = RPCSettings.coerce(settings)
    if path is not None:
        settings = replace(settings, base_path=path)

    rpc = RPC(validator=validator, settings=settings)
    rpc.mount(app)
    return rpc
