# rpcmount/transport/http.py
import json
import logging

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from rpcmount.config.default import INTERNAL_ERROR_MESSAGE
from rpcmount.config.settings import RPCSettings
from rpcmount.server.dispatcher import RPCDispatcher


class HTTPTransport:
    def __init__(self, dispatcher: RPCDispatcher, settings: RPCSettings):
        self.dispatcher = dispatcher
        self.settings = settings
        self._logger = logging.getLogger("rpcmount.http")

    # POST {base}/call
    async def handle(self, request: Request, response: Response) -> Response:
        try:
            raw = await request.body()
            try:
                payload = json.loads(raw) if raw else None
            except (json.JSONDecodeError, UnicodeDecodeError):
                payload = None

            if not isinstance(payload, dict) or not payload:
                return self._error_response("Invalid JSON", 400)

            if self.settings.check_version and not self._version_ok(payload.get("version")):
                return self._error_response(
                    "Invalid API version: make sure you are using the version of the client "
                    f">= {self.settings.least_supported_client_version}",
                    400,
                )

            result = await self.dispatcher.dispatch(payload, request, response)
            status = result.status_code if self.settings.propagate_status else 200
            reply = JSONResponse(status_code=status, content=jsonable_encoder(result.to_body()))
            self._copy_headers(response, reply)
            return reply

        except Exception:
            self._logger.exception("Unhandled error in RPC call endpoint")
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": INTERNAL_ERROR_MESSAGE},
            )

    # GET {base}/discover
    async def discover(self) -> JSONResponse:
        return JSONResponse(content=self.dispatcher.registry.list())

    def _version_ok(self, version) -> bool:
        # True == 1 in Python; a boolean is never a version
        if isinstance(version, bool):
            return False
        return version == self.settings.api_version

    @staticmethod
    def _copy_headers(source: Response, target: Response) -> None:
        """Carry headers a handler set (Set-Cookie, ...) onto the reply."""
        for key, value in source.raw_headers:
            if key not in (b"content-length", b"content-type"):
                target.raw_headers.append((key, value))

    @staticmethod
    def _error_response(message: str, status: int = 400) -> JSONResponse:
        return JSONResponse(status_code=status, content={"error": message})
