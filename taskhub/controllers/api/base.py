from __future__ import annotations

from typing import Any, Mapping, Optional

from fastapi.responses import JSONResponse

from taskhub.core.controller import Controller
from taskhub.core.security import validate_csrf_token


class ApiController(Controller):
    """
    JSON endpoints. Every response uses the envelope::

        {"success": bool, "message": str, "data": ...}            # success
        {"success": false, "message": str, "errors": {...}}       # failure
    """

    def success(self, data: Any = None, message: str = "Success", status_code: int = 200) -> JSONResponse:
        return self.json({"success": True, "message": message, "data": data}, status_code)

    def error(self, message: str, errors: Any = None, status_code: int = 400) -> JSONResponse:
        body: dict[str, Any] = {"success": False, "message": message}
        if errors is not None:
            body["errors"] = errors
        return self.json(body, status_code)

    def payload(self) -> Optional[dict[str, Any]]:
        """JSON object body, or None when the body is not a JSON object."""
        if self.context.bad_json:
            return None
        return dict(self.context.data)

    def validation_error(self, data: Mapping[str, Any], rules: Mapping[str, Any]) -> Optional[JSONResponse]:
        errors = self.validate(data, rules)
        if errors:
            return self.error("Validation failed", errors, 422)
        return None

    def csrf_error(self) -> Optional[JSONResponse]:
        """
        API clients are not required to send a token; a token that is sent
        must match the session's.
        """
        token = self.context.headers.get("x-csrf-token")
        if token is not None and not validate_csrf_token(self.context.session, token):
            return self.error("Invalid CSRF token", None, 403)
        return None
