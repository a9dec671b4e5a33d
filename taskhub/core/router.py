"""Application router.

Routes are kept in registration order and matched linearly: the first route
whose method and pattern both match wins. Overlapping patterns are therefore
resolved by registration order alone, so fixed paths such as
``/tasks/create`` must be registered before ``/tasks/{id}``.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from taskhub.core.errors import NotFound, ServerError

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([a-zA-Z0-9_]+)\}")

Handler = Union[Callable[..., Any], tuple]


def compile_pattern(pattern: str) -> re.Pattern:
    """``/tasks/{id}`` -> ``^/tasks/(?P<id>[^/]+)$``"""
    parts = []
    pos = 0
    for m in _PLACEHOLDER.finditer(pattern):
        parts.append(re.escape(pattern[pos:m.start()]))
        parts.append(f"(?P<{m.group(1)}>[^/]+)")
        pos = m.end()
    parts.append(re.escape(pattern[pos:]))
    return re.compile("^" + "".join(parts) + "$")


def normalize_path(uri: str) -> str:
    path = uri.split("?", 1)[0].rstrip("/")
    return path or "/"


@dataclass
class Route:
    method: str
    pattern: str
    handler: Handler
    regex: re.Pattern

    def match(self, method: str, path: str) -> Optional[dict[str, str]]:
        if self.method != method:
            return None
        m = self.regex.match(path)
        if m is None:
            return None
        return m.groupdict()


class Router:
    def __init__(self, base_path: str = "") -> None:
        self.base_path = base_path.rstrip("/")
        self.routes: list[Route] = []

    def register(self, method: str, pattern: str, handler: Handler) -> "Router":
        full = self.base_path + pattern
        self.routes.append(Route(method.upper(), full, handler, compile_pattern(full)))
        return self

    add_route = register

    def get(self, pattern: str, handler: Handler) -> "Router":
        return self.register("GET", pattern, handler)

    def post(self, pattern: str, handler: Handler) -> "Router":
        return self.register("POST", pattern, handler)

    def put(self, pattern: str, handler: Handler) -> "Router":
        return self.register("PUT", pattern, handler)

    def delete(self, pattern: str, handler: Handler) -> "Router":
        return self.register("DELETE", pattern, handler)

    def match(self, method: str, uri: str) -> tuple[Route, dict[str, str]]:
        method = method.upper()
        path = normalize_path(uri)
        for route in self.routes:
            params = route.match(method, path)
            if params is not None:
                return route, params
        raise NotFound(f"No route found for {method} {path}")

    def dispatch(self, method: str, uri: str, context: Any = None) -> Any:
        route, params = self.match(method, uri)
        logger.debug("%s %s -> %s %s", method.upper(), uri, route.pattern, params)
        return self._execute(route.handler, params, context)

    @staticmethod
    def _execute(handler: Handler, params: dict[str, str], context: Any) -> Any:
        if isinstance(handler, tuple) and len(handler) == 2:
            controller_cls, action = handler
            if not isinstance(controller_cls, type):
                raise ServerError("Invalid route handler")
            controller = controller_cls(context)
            method = getattr(controller, action, None)
            if not callable(method):
                raise ServerError(f"Method {action} not found in controller {controller_cls.__name__}")
            return method(**params)

        if callable(handler):
            return handler(**params)

        raise ServerError("Invalid route handler")
