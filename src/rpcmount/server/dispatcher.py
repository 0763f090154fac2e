# rpcmount/server/dispatcher.py
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Response

from rpcmount.config.default import GENERIC_ERROR_MESSAGE
from rpcmount.errors import (
    AUTHORIZATION_FAILED,
    METHOD_NOT_FOUND,
    METHOD_NOT_STRING,
    METHOD_REQUIRED,
    PARAMS_NOT_LIST,
    DispatchError,
    Failure,
    Labeled,
    Unstructured,
    classify,
)
from rpcmount.schemas import RPCRequest, RPCResponse
from rpcmount.server.auth import Validator, allow_all, run_validator
from rpcmount.server.registry import MethodRegistry, _MethodWrapper
from rpcmount.server.renderers import ErrorRendererRegistry


class RPCDispatcher:
    """
    Turns one decoded call body into one ``RPCResponse``.

    Order: shape checks, method lookup, authorization, invocation. Nothing
    raised by a handler or the validator escapes ``dispatch``.
    """

    def __init__(
        self,
        registry: MethodRegistry,
        renderers: ErrorRendererRegistry,
        validator: Validator | None = None,
    ):
        self.registry = registry
        self.renderers = renderers
        self.validator: Validator = validator or allow_all
        self._logger = logging.getLogger("rpcmount.dispatcher")

    # ───── Shape checks ─────
    @staticmethod
    def validate(payload: Any) -> RPCRequest:
        if not isinstance(payload, dict):
            raise METHOD_REQUIRED()

        method = payload.get("method")
        params = payload.get("params")

        if not method:
            raise METHOD_REQUIRED()
        if not isinstance(method, str):
            raise METHOD_NOT_STRING()
        if params is not None and not isinstance(params, list):
            raise PARAMS_NOT_LIST()

        return RPCRequest.model_construct(
            method=method,
            params=params or [],
            version=payload.get("version"),
        )

    def resolve(self, method: str) -> _MethodWrapper:
        handler = self.registry.resolve(method)
        if handler is None:
            raise METHOD_NOT_FOUND(method)
        return handler

    # ───── Entry point ─────
    async def dispatch(
        self,
        payload: Any,
        request: Any = None,
        response: Optional[Response] = None,
    ) -> RPCResponse:
        try:
            rpc_request = self.validate(payload)
            handler = self.resolve(rpc_request.method)
        except DispatchError as e:
            self._logger.info(f"Rejected call: {e.message}")
            return e.to_response()

        try:
            metadata = await run_validator(self.validator, request, response)
            if metadata is None:
                self._logger.warning(f"Authorization failed for '{rpc_request.method}'")
                return AUTHORIZATION_FAILED().to_response()

            result = await handler.invoke(metadata, rpc_request.params)
        except Exception as e:
            return self.handle_failure(classify(e), rpc_request.method)

        return RPCResponse.ok(result)

    # ───── Failure translation ─────
    def handle_failure(self, failure: Failure, method: str) -> RPCResponse:
        match failure:
            case Labeled(error=error):
                try:
                    message = self.renderers.render(error.label, error.parameters)
                except Exception:
                    self._logger.exception(f"Renderer for '{error.label}' failed")
                    return RPCResponse.failure(GENERIC_ERROR_MESSAGE, 500)
                if message is None:
                    self._logger.error(
                        f"No renderer for error label '{error.label}' raised by '{method}'"
                    )
                    return RPCResponse.failure(GENERIC_ERROR_MESSAGE, 500)
                return RPCResponse.failure(message, error.status_code)

            case Unstructured(exc=exc):
                self._logger.error(
                    f"RPC method '{method}' failed", exc_info=(type(exc), exc, exc.__traceback__)
                )
                return RPCResponse.failure(GENERIC_ERROR_MESSAGE, 500)
