# rpcmount/errors.py
from dataclasses import dataclass, field
from typing import Dict, Union

from rpcmount.schemas import RPCResponse


# ──────────────────────────────────────────────────────────────
# Pipeline rejections (raised by the dispatcher itself)
# ──────────────────────────────────────────────────────────────
@dataclass(eq=False)
class DispatchError(Exception):
    message: str
    status_code: int = 500

    def __str__(self) -> str:
        return self.message

    def to_response(self) -> RPCResponse:
        return RPCResponse.failure(self.message, self.status_code)


@dataclass(eq=False)
class BadRequest(DispatchError):
    status_code: int = 400


@dataclass(eq=False)
class NotFound(DispatchError):
    status_code: int = 404


@dataclass(eq=False)
class Forbidden(DispatchError):
    status_code: int = 403


METHOD_REQUIRED = lambda: BadRequest("method and params required")
METHOD_NOT_STRING = lambda: NotFound("RPC function doesn't exist")
PARAMS_NOT_LIST = lambda: BadRequest("params should be a list")
# Unknown methods answer 400, not 404
METHOD_NOT_FOUND = lambda name: NotFound(f"RPC function '{name}' not found", status_code=400)
AUTHORIZATION_FAILED = lambda: Forbidden("authorization failed")


class InvalidName(ValueError):
    """A handler was registered without a usable method name."""


# ──────────────────────────────────────────────────────────────
# Handler failures
# ──────────────────────────────────────────────────────────────
@dataclass(eq=False)
class LabeledError(Exception):
    """
    Business failure with a stable label. The message shown to the caller
    comes from the renderer registered for ``label``, fed ``parameters``.
    """

    label: str
    parameters: Dict[str, str] = field(default_factory=dict)
    status_code: int = 400

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class Labeled:
    error: LabeledError


@dataclass(frozen=True)
class Unstructured:
    exc: BaseException


Failure = Union[Labeled, Unstructured]


def classify(exc: BaseException) -> Failure:
    if isinstance(exc, LabeledError):
        return Labeled(exc)
    return Unstructured(exc)
