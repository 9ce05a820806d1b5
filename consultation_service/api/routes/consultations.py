"""Consultation endpoints.

CRUD and search over consultations. Routes only check identifier presence,
delegate to the ConsultationService and shape the response (status code,
alert headers, pagination headers).
"""

import logging
from typing import TypeVar

from fastapi import APIRouter, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse

from consultation_service.api.dependencies import PageableDep, ServiceDep
from consultation_service.api.header_util import (
    create_entity_creation_alert,
    create_entity_deletion_alert,
    create_entity_update_alert,
)
from consultation_service.api.pagination_util import generate_pagination_http_headers
from consultation_service.domain.consultation import ENTITY_NAME, ConsultationDTO
from consultation_service.domain.pagination import Page
from consultation_service.domain.ports import BadRequestAlertError, Result
from consultation_service.infrastructure.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar('T')

router = APIRouter(prefix=settings.api_prefix, tags=["consultations"])


def _unwrap(result: Result[T]) -> T:
    if result.is_success():
        return result.value
    raise HTTPException(status_code=500, detail=str(result.error))


def _page_response(request: Request, page: Page[ConsultationDTO]) -> JSONResponse:
    headers = generate_pagination_http_headers(request.url, page)
    return JSONResponse(
        content=[consultation.model_dump(mode="json") for consultation in page.content],
        headers=headers,
    )


@router.post("/consultations", status_code=status.HTTP_201_CREATED, response_model=ConsultationDTO)
def create_consultation(consultation: ConsultationDTO, service: ServiceDep):
    """Create a new consultation.

    Returns 201 with the new consultation and a Location header, or 400 if the
    consultation already has an ID.
    """
    logger.debug(f"REST request to save Consultation : {consultation}")
    if consultation.id is not None:
        raise BadRequestAlertError("A new consultation cannot already have an ID", ENTITY_NAME, "idexists")

    result = _unwrap(service.save(consultation))
    headers = create_entity_creation_alert(settings.app_name, True, ENTITY_NAME, str(result.id))
    headers["Location"] = f"{settings.api_prefix}/consultations/{result.id}"
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=result.model_dump(mode="json"),
        headers=headers,
    )


@router.put("/consultations", response_model=ConsultationDTO)
def update_consultation(consultation: ConsultationDTO, service: ServiceDep):
    """Update an existing consultation.

    Returns 200 with the updated consultation, 400 if it has no ID, or 500 if
    it couldn't be updated.
    """
    logger.debug(f"REST request to update Consultation : {consultation}")
    if consultation.id is None:
        raise BadRequestAlertError("Invalid id", ENTITY_NAME, "idnull")

    result = _unwrap(service.save(consultation))
    return JSONResponse(
        content=result.model_dump(mode="json"),
        headers=create_entity_update_alert(settings.app_name, True, ENTITY_NAME, str(consultation.id)),
    )


@router.get("/consultations", response_model=list[ConsultationDTO])
def get_all_consultations(request: Request, pageable: PageableDep, service: ServiceDep):
    """Get a page of consultations, with pagination headers."""
    logger.debug("REST request to get a page of Consultations")
    page = _unwrap(service.find_all(pageable))
    return _page_response(request, page)


@router.get("/consultations/{consultation_id}", response_model=ConsultationDTO)
def get_consultation(consultation_id: int, service: ServiceDep):
    """Get the consultation with the given id, or 404 with an empty body."""
    logger.debug(f"REST request to get Consultation : {consultation_id}")
    consultation = _unwrap(service.find_one(consultation_id))
    if consultation is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return JSONResponse(content=consultation.model_dump(mode="json"))


@router.delete("/consultations/{consultation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_consultation(consultation_id: int, service: ServiceDep):
    """Delete the consultation with the given id (204 whether or not it existed)."""
    logger.debug(f"REST request to delete Consultation : {consultation_id}")
    _unwrap(service.delete(consultation_id))
    return Response(
        status_code=status.HTTP_204_NO_CONTENT,
        headers=create_entity_deletion_alert(settings.app_name, True, ENTITY_NAME, str(consultation_id)),
    )


@router.get("/_search/consultations", response_model=list[ConsultationDTO])
def search_consultations(
    request: Request,
    pageable: PageableDep,
    service: ServiceDep,
    query: str = Query(..., description="Query string (Lucene-style subset)"),
):
    """Search for the consultations matching the query, with pagination headers."""
    logger.debug(f"REST request to search for a page of Consultations for query {query}")
    page = _unwrap(service.search(query, pageable))
    return _page_response(request, page)
