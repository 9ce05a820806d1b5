"""Consultation Service.

Coordinates the relational store and the search index: writes go to the
repository first and the persisted record is then mirrored into the index;
reads come from the repository, searches from the index.
"""

import logging
from typing import Optional

from consultation_service.domain.consultation import ConsultationDTO
from consultation_service.domain.pagination import Page, Pageable
from consultation_service.domain.ports import (
    ConsultationRepositoryPort,
    Result,
    SearchIndexPort,
)

logger = logging.getLogger(__name__)


class ConsultationService:
    """Service for managing consultations."""

    def __init__(self, repository: ConsultationRepositoryPort, search_index: SearchIndexPort):
        """Initialize ConsultationService.

        Parameters:
            repository: Relational store adapter
            search_index: Search index adapter
        """
        self.repository = repository
        self.search_index = search_index

    def save(self, consultation: ConsultationDTO) -> Result[ConsultationDTO]:
        """Save a consultation and (re)index it.

        Parameters:
            consultation: Record to save; inserted when it has no id

        Returns:
            Result containing the persisted record or the first failure
        """
        logger.debug(f"Request to save Consultation : {consultation}")
        result = self.repository.save(consultation)
        if not result.is_success():
            return result

        index_result = self.search_index.index(result.value)
        if not index_result.is_success():
            logger.error(
                f"Consultation {result.value.id} was stored but could not be indexed: {index_result.error}"
            )
            return Result.failure_result(
                index_result.error,
                error_type=index_result.error_type,
                error_details={"id": result.value.id, **(index_result.error_details or {})}
            )

        return result

    def find_all(self, pageable: Pageable) -> Result[Page[ConsultationDTO]]:
        """Get all the consultations, one page at a time."""
        logger.debug("Request to get all Consultations")
        return self.repository.find_all(pageable)

    def find_one(self, consultation_id: int) -> Result[Optional[ConsultationDTO]]:
        """Get one consultation by id."""
        logger.debug(f"Request to get Consultation : {consultation_id}")
        return self.repository.find_by_id(consultation_id)

    def delete(self, consultation_id: int) -> Result[None]:
        """Delete a consultation from the store and the index."""
        logger.debug(f"Request to delete Consultation : {consultation_id}")
        result = self.repository.delete_by_id(consultation_id)
        if not result.is_success():
            return result
        return self.search_index.delete(consultation_id)

    def search(self, query: str, pageable: Pageable) -> Result[Page[ConsultationDTO]]:
        """Search for the consultations corresponding to the query."""
        logger.debug(f"Request to search for a page of Consultations for query {query}")
        return self.search_index.search(query, pageable)

    def reindex(self) -> Result[int]:
        """Rebuild the search index from the relational store.

        Returns:
            Result containing the number of indexed consultations
        """
        logger.info("Reindexing all Consultations")
        clear_result = self.search_index.clear()
        if not clear_result.is_success():
            return clear_result

        indexed = 0
        try:
            for consultation in self.repository.find_all_unpaged():
                index_result = self.search_index.index(consultation)
                if not index_result.is_success():
                    return index_result
                indexed += 1
        except Exception as e:
            logger.error(f"Reindex aborted after {indexed} consultations: {str(e)}", exc_info=True)
            return Result.failure_result(e, error_details={"indexed": indexed})

        logger.info(f"Reindexed {indexed} Consultations")
        return Result.success_result(indexed)
