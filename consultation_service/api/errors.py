"""Exception handlers for the consultation API.

``BadRequestAlertError`` is rendered as an RFC 7807 problem document together
with the failure alert headers.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from consultation_service.api.header_util import create_failure_alert
from consultation_service.domain.ports import BadRequestAlertError
from consultation_service.infrastructure.settings import settings

logger = logging.getLogger(__name__)

PROBLEM_BASE_URL = "https://www.jhipster.tech/problem"
PROBLEM_WITH_MESSAGE_TYPE = f"{PROBLEM_BASE_URL}/problem-with-message"
PROBLEM_CONTENT_TYPE = "application/problem+json"


async def bad_request_alert_handler(request: Request, exc: BadRequestAlertError) -> JSONResponse:
    """Render an identifier-contract violation as a 400 problem document."""
    logger.warning(f"Bad request on {request.method} {request.url.path}: {exc.error_key}")
    headers = create_failure_alert(settings.app_name, True, exc.entity_name, exc.error_key, exc.message)
    return JSONResponse(
        status_code=400,
        content={
            "type": PROBLEM_WITH_MESSAGE_TYPE,
            "title": exc.message,
            "status": 400,
            "entityName": exc.entity_name,
            "errorKey": exc.error_key,
            "message": f"error.{exc.error_key}",
            "params": exc.entity_name,
        },
        headers=headers,
        media_type=PROBLEM_CONTENT_TYPE,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BadRequestAlertError, bad_request_alert_handler)
