# rpcmount/client/client.py
from __future__ import annotations

from typing import Any, List, Optional

import httpx

from rpcmount.config.default import API_VERSION, DEFAULT_BASE_PATH
from rpcmount.schemas import RPCRequest


class RPCCallError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RPCClient:
    """Async client for the ``call`` and ``discover`` endpoints."""

    def __init__(
        self,
        base_url: str,
        base_path: str = DEFAULT_BASE_PATH,
        version: int = API_VERSION,
        cookies: Optional[dict] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_path = base_path.rstrip("/")
        self.version = version
        self.client = httpx.AsyncClient(
            base_url=base_url,
            cookies=cookies,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "RPCClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def call(self, method: str, *params: Any) -> Any:
        req = RPCRequest(method=method, params=list(params), version=self.version)
        resp = await self.client.post(f"{self.base_path}/call", json=req.model_dump())

        try:
            body = resp.json()
        except ValueError:
            raise RPCCallError(f"non-JSON response ({resp.status_code})", resp.status_code)

        if not body.get("success"):
            raise RPCCallError(body.get("error") or "unknown error", resp.status_code)
        return body.get("data")

    async def discover(self) -> List[str]:
        resp = await self.client.get(f"{self.base_path}/discover")
        resp.raise_for_status()
        return resp.json()

    async def aclose(self) -> None:
        await self.client.aclose()
