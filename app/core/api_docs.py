from app.core.observability import error_code_for
from app.schemas.common import ErrorOut


_ERROR_MESSAGES: dict[int, str] = {
    400: "Bad request",
    401: "Unauthorized",
    403: "You do not have the necessary permissions to perform this action",
    404: "Resource not found",
    409: "Conflict",
    422: "A validation error has occurred",
    429: "Too many requests",
    500: "Internal server error",
}


def error_responses(*status_codes: int) -> dict[int, dict]:
    responses: dict[int, dict] = {}
    for status_code in status_codes:
        code = error_code_for(status_code)
        message = _ERROR_MESSAGES.get(status_code, "HTTP error")
        responses[status_code] = {
            "model": ErrorOut,
            "description": message,
            "content": {
                "application/json": {
                    "example": {
                        "statusCode": status_code,
                        "success": False,
                        "errors": {
                            "message": message,
                            "code": code,
                            "requestId": "request-id",
                            "path": "/api/example",
                            "details": None,
                        },
                    }
                }
            },
        }
    return responses
