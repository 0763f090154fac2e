# rpcmount/server/registry.py
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from rpcmount.errors import InvalidName
from rpcmount.schemas import CallMetadata

RPCHandler = Callable[..., Any]

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


# ──────────────────────────────────────────────────────────────
# Positional binding
# ──────────────────────────────────────────────────────────────
def bind_positional(
    signature: Optional[inspect.Signature],
    metadata: CallMetadata,
    params: Sequence[Any],
) -> Tuple[List[Any], Dict[str, Any]]:
    """
    Map ``(metadata, *params)`` onto the handler's parameter slots.

    Slots are filled in order; surplus values are dropped unless the handler
    takes ``*args``. A slot left empty keeps its default, or gets ``None``
    when it has none. Keyword-only parameters are treated the same way.
    """
    values = [metadata, *params]
    if signature is None:
        return values, {}

    args: List[Any] = []
    kwargs: Dict[str, Any] = {}
    for param in signature.parameters.values():
        if param.kind in _POSITIONAL:
            if values:
                args.append(values.pop(0))
            elif param.default is not param.empty:
                continue
            elif param.kind is inspect.Parameter.POSITIONAL_ONLY:
                args.append(None)
            else:
                kwargs[param.name] = None
        elif param.kind is inspect.Parameter.VAR_POSITIONAL:
            args.extend(values)
            values = []
        elif param.kind is inspect.Parameter.KEYWORD_ONLY:
            if param.default is param.empty:
                kwargs[param.name] = None
    return args, kwargs


# ──────────────────────────────────────────────────────────────
# _MethodWrapper – Holds function + metadata
# ──────────────────────────────────────────────────────────────
@dataclass
class _MethodWrapper:
    """Registered handler plus what the dispatcher needs to call it."""

    fn: RPCHandler
    name: str
    description: str | None = None

    # ───── Helper: Is async? ─────
    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.fn)

    # ───── Helper: Get signature ─────
    @cached_property
    def signature(self) -> Optional[inspect.Signature]:
        try:
            return inspect.signature(self.fn)
        except (TypeError, ValueError):
            # some builtins and C callables have no introspectable signature
            return None

    async def invoke(self, metadata: CallMetadata, params: Sequence[Any]) -> Any:
        """Call the handler (sync or async) and return a concrete result."""
        args, kwargs = bind_positional(self.signature, metadata, params)
        result = self.fn(*args, **kwargs)
        if inspect.isawaitable(result):
            return await result
        return result


# ──────────────────────────────────────────────────────────────
# MethodRegistry
# ──────────────────────────────────────────────────────────────
class MethodRegistry:
    def __init__(self):
        self._methods: Dict[str, _MethodWrapper] = {}
        self._logger = logging.getLogger("rpcmount.registry")

    def __contains__(self, name: object) -> bool:
        return name in self._methods

    def __len__(self) -> int:
        return len(self._methods)

    @property
    def methods(self) -> Dict[str, RPCHandler]:
        return {name: wrapper.fn for name, wrapper in self._methods.items()}

    # ───── Add / Register ─────
    def add(
        self,
        handler: RPCHandler,
        name: str | None = None,
        description: str | None = None,
    ) -> _MethodWrapper:
        if not callable(handler):
            raise TypeError("handler must be callable")

        method_name = name or getattr(handler, "__name__", None)
        if not isinstance(method_name, str) or not method_name or method_name == "<lambda>":
            raise InvalidName("Function must have a name")

        wrapper = _MethodWrapper(fn=handler, name=method_name, description=description)
        if method_name in self._methods:
            self._logger.warning(f"Overwriting RPC method: {method_name}")

        # replace the whole map so a concurrent lookup never sees a half-written one
        self._methods = {**self._methods, method_name: wrapper}
        self._logger.debug(f"Registered: {method_name}")
        return wrapper

    def register(self, name: str | None = None, description: str | None = None):
        def decorator(fn: RPCHandler) -> RPCHandler:
            self.add(fn, name=name, description=description)
            return fn
        return decorator

    # ───── Lookup ─────
    def resolve(self, name: str) -> Optional[_MethodWrapper]:
        return self._methods.get(name)

    def list(self) -> List[str]:
        return list(self._methods)
