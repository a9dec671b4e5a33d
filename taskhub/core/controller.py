from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.requests import Request

from taskhub.core import validation
from taskhub.core.security import Session, csrf_token
from taskhub.database import Database


@dataclass
class RequestContext:
    """Everything a controller needs to serve one request."""

    request: Request
    method: str
    path: str
    db: Database
    templates: Jinja2Templates
    session: Session
    query: Mapping[str, Any] = field(default_factory=dict)
    # parsed form or JSON object body
    data: dict[str, Any] = field(default_factory=dict)
    # body was sent but is not a JSON object
    bad_json: bool = False

    @property
    def headers(self) -> Mapping[str, str]:
        return self.request.headers


class Controller:
    def __init__(self, context: RequestContext) -> None:
        self.context = context
        self.db = context.db

    # ---- request ----

    def request_data(self) -> dict[str, Any]:
        if self.context.method == "GET":
            return dict(self.context.query)
        return dict(self.context.data)

    def param(self, key: str, default: Any = None) -> Any:
        value = self.context.data.get(key)
        if value is None:
            value = self.context.query.get(key)
        return default if value is None else value

    def int_param(self, key: str, default: int) -> int:
        try:
            return int(self.param(key, default))
        except (TypeError, ValueError, OverflowError):
            return default

    def is_ajax(self) -> bool:
        return self.context.headers.get("x-requested-with", "").lower() == "xmlhttprequest"

    def validate(self, data: Mapping[str, Any], rules: Mapping[str, Any]) -> dict[str, list[str]]:
        return validation.validate(data, rules)

    # ---- responses ----

    def render(self, template: str, status_code: int = 200, **context: Any):
        context.setdefault("csrf_token", csrf_token(self.context.session))
        return self.context.templates.TemplateResponse(
            self.context.request, template, context, status_code=status_code
        )

    def json(self, data: Any, status_code: int = 200) -> JSONResponse:
        return JSONResponse(content=jsonable_encoder(data), status_code=status_code)

    def redirect(self, url: str, status_code: int = 302) -> RedirectResponse:
        return RedirectResponse(url, status_code=status_code)

    def csrf_from_request(self) -> Optional[str]:
        return self.param("csrf_token") or self.context.headers.get("x-csrf-token")
