from fastapi import Response

from pulse.core.errors import HTTP_STATUS_BY_KIND
from pulse.services.results import ServiceResult


def apply_result_status(response: Response, result: ServiceResult) -> None:
    """Set the HTTP status (and ``Retry-After``) for a failed service result.

    The body keeps the result shape; only the status line changes.
    """
    if result.error_kind is not None:
        response.status_code = HTTP_STATUS_BY_KIND[result.error_kind]
    if result.retry_after_seconds:
        response.headers["Retry-After"] = str(result.retry_after_seconds)
