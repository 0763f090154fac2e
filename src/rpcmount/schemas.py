# rpcmount/schemas.py
from typing import Any, Dict, List, Optional, Union

from fastapi import Response
from pydantic import BaseModel, ConfigDict, Field

JSONValue = Union[str, int, float, bool, None, dict, list]

# Claims handed to a handler: decoded identity, role, ...
AuthorizationContext = Dict[str, Union[str, int, float]]


class RPCRequest(BaseModel):
    method: str
    params: List[Any] = Field(default_factory=list)
    version: Optional[int] = None


class RPCResponse(BaseModel):
    """
    Uniform call envelope. Exactly one of ``data`` / ``error`` is meaningful:
    ``data`` when ``success`` is true, ``error`` otherwise.
    """

    success: bool
    data: Any = None
    error: Optional[str] = None
    status_code: int = 200

    @classmethod
    def ok(cls, data: Any) -> "RPCResponse":
        return cls(success=True, data=data, status_code=200)

    @classmethod
    def failure(cls, error: str, status_code: int) -> "RPCResponse":
        return cls(success=False, error=error, status_code=status_code)

    def to_body(self) -> dict:
        """HTTP body: ``{success, data}`` or ``{success, error}``."""
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}


class ValidatorResult(BaseModel):
    authorized: bool
    context: AuthorizationContext = Field(default_factory=dict)

    @classmethod
    def allow(cls, context: Optional[AuthorizationContext] = None) -> "ValidatorResult":
        return cls(authorized=True, context=context or {})

    @classmethod
    def deny(cls) -> "ValidatorResult":
        return cls(authorized=False)


class CallMetadata(BaseModel):
    """
    First argument of every handler. ``request`` is whatever ambient object
    the caller dispatched with (a FastAPI ``Request`` over HTTP); ``response``
    lets a handler set cookies or headers on the HTTP reply.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    auth: AuthorizationContext = Field(default_factory=dict)
    request: Any = None
    response: Optional[Response] = None
