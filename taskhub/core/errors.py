class HttpError(Exception):
    """Failure that maps onto an HTTP status code."""

    status_code = 500

    def __init__(self, message: str = "", status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFound(HttpError):
    status_code = 404


class ServerError(HttpError):
    status_code = 500
