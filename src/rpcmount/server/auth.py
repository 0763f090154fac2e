# rpcmount/server/auth.py
from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from fastapi import Request, Response

from rpcmount.schemas import CallMetadata, ValidatorResult
from rpcmount.server.cookies import request_cookies

Validator = Callable[[Request], Union[ValidatorResult, Awaitable[ValidatorResult]]]
TokenVerifier = Callable[[str], Union[Optional[Mapping[str, Any]], Awaitable[Optional[Mapping[str, Any]]]]]

logger = logging.getLogger("rpcmount.auth")


def allow_all(request: Request) -> ValidatorResult:
    """Validator used when the host registers none."""
    return ValidatorResult.allow()


async def run_validator(
    validator: Validator,
    request: Any,
    response: Optional[Response] = None,
) -> Optional[CallMetadata]:
    """
    Run the gate once. Returns the handler metadata, or ``None`` when the
    call is rejected.
    """
    result = validator(request)
    if inspect.isawaitable(result):
        result = await result
    if not isinstance(result, ValidatorResult):
        raise TypeError(f"validator must return ValidatorResult, got {type(result).__name__}")
    if not result.authorized:
        return None
    # no re-validation: the handler gets the validator's claims object itself
    return CallMetadata.model_construct(auth=result.context, request=request, response=response)


def cookie_validator(verify: TokenVerifier, cookie_name: str = "token") -> Validator:
    """
    Build a validator that reads ``cookie_name`` and hands the token to
    ``verify``. ``verify`` returns the claims for a good token and ``None``
    otherwise; it may be a coroutine function.
    """

    async def validator(request: Request) -> ValidatorResult:
        if not isinstance(request, Request):
            return ValidatorResult.deny()
        token = request_cookies(request).get(cookie_name)
        if not token:
            logger.debug(f"No '{cookie_name}' cookie on request")
            return ValidatorResult.deny()

        claims = verify(token)
        if inspect.isawaitable(claims):
            claims = await claims
        if claims is None:
            return ValidatorResult.deny()
        return ValidatorResult.allow(dict(claims))

    return validator
