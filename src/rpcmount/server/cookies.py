# rpcmount/server/cookies.py
from __future__ import annotations

import logging
from typing import Dict, Optional
from urllib.parse import unquote

from fastapi import FastAPI, Request
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger("rpcmount.cookies")

_INSTALLED_FLAG = "rpcmount_cookie_parser_installed"


def parse_cookies(header: Optional[str]) -> Dict[str, str]:
    """
    Parse a raw ``Cookie`` header into ``{name: value}``.

    Segments without ``=`` are skipped. Values are unquoted and
    percent-decoded; when a name repeats, the first occurrence wins.
    """
    cookies: Dict[str, str] = {}
    if not header:
        return cookies

    for segment in header.split(";"):
        if "=" not in segment:
            continue
        key, value = segment.split("=", 1)
        key = key.strip()
        if not key or key in cookies:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        cookies[key] = unquote(value)
    return cookies


class CookieParserMiddleware:
    """Store parsed cookies at ``request.state.cookies`` for every HTTP request."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            headers = Headers(scope=scope)
            scope.setdefault("state", {})["cookies"] = parse_cookies(headers.get("cookie"))
        await self.app(scope, receive, send)


def install_cookie_parser(app: FastAPI) -> bool:
    """Add the middleware once per application. Returns False if already there."""
    if getattr(app.state, _INSTALLED_FLAG, False):
        return False
    app.add_middleware(CookieParserMiddleware)
    setattr(app.state, _INSTALLED_FLAG, True)
    logger.debug("Cookie parser installed on %s", app.title)
    return True


def request_cookies(request: Request) -> Dict[str, str]:
    cookies = getattr(request.state, "cookies", None)
    if cookies is None:
        cookies = parse_cookies(request.headers.get("cookie"))
    return cookies
