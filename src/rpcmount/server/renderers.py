# rpcmount/server/renderers.py
from __future__ import annotations

import logging
from typing import Callable, Dict, Mapping, Optional

Renderer = Callable[[Mapping[str, str]], str]


class ErrorRendererRegistry:
    """
    Label -> renderer lookup for ``LabeledError``. Renderers only format a
    message from the error parameters; they must not do I/O.
    """

    def __init__(self):
        self._renderers: Dict[str, Renderer] = {}
        self._logger = logging.getLogger("rpcmount.renderers")

    def __contains__(self, label: object) -> bool:
        return label in self._renderers

    def add(self, label: str, renderer: Renderer) -> None:
        if not callable(renderer):
            raise TypeError("renderer must be callable")
        if label in self._renderers:
            self._logger.warning(f"Overwriting renderer for label: {label}")
        self._renderers = {**self._renderers, label: renderer}

    def register(self, label: str):
        def decorator(fn: Renderer) -> Renderer:
            self.add(label, fn)
            return fn
        return decorator

    def render(self, label: str, parameters: Mapping[str, str]) -> Optional[str]:
        renderer = self._renderers.get(label)
        if renderer is None:
            return None
        return renderer(parameters)
