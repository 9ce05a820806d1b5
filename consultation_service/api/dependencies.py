"""Dependency injection for the consultation API.

This module provides dependency injection functions for FastAPI, following
Hexagonal Architecture principles: routes receive ports, never concrete
adapters.
"""

import logging
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Query

from consultation_service.adapters.search import DuckDBSearchIndex
from consultation_service.adapters.storage import (
    DuckDBConsultationRepository,
    PostgreSQLConsultationRepository,
)
from consultation_service.domain.pagination import MAX_OFFSET, Pageable
from consultation_service.domain.ports import ConsultationRepositoryPort, SearchIndexPort
from consultation_service.domain.services import ConsultationService
from consultation_service.infrastructure.settings import settings

logger = logging.getLogger(__name__)

# Largest page index whose last row still fits the stores at the largest page size
MAX_PAGE_INDEX = MAX_OFFSET // settings.max_page_size - 1


@lru_cache()
def get_repository() -> ConsultationRepositoryPort:
    """Get the relational store adapter (cached).

    Returns:
        ConsultationRepositoryPort: DuckDB or PostgreSQL repository

    Raises:
        ValueError: If database type is unsupported
    """
    db_config = settings.db_config

    if db_config.db_type == "duckdb":
        logger.debug(f"Creating DuckDB repository with path: {db_config.db_path or ':memory:'}")
        return DuckDBConsultationRepository(db_config=db_config)
    elif db_config.db_type == "postgresql":
        logger.debug(f"Creating PostgreSQL repository with host: {db_config.host}")
        return PostgreSQLConsultationRepository(db_config=db_config)
    else:
        raise ValueError(f"Unsupported database type: {db_config.db_type}")


@lru_cache()
def get_search_index() -> SearchIndexPort:
    """Get the search index adapter (cached)."""
    search_config = settings.search_config
    logger.debug(f"Creating search index with path: {search_config.index_path or ':memory:'}")
    return DuckDBSearchIndex(search_config=search_config)


RepositoryDep = Annotated[ConsultationRepositoryPort, Depends(get_repository)]
SearchIndexDep = Annotated[SearchIndexPort, Depends(get_search_index)]


def get_consultation_service(repository: RepositoryDep, search_index: SearchIndexDep) -> ConsultationService:
    return ConsultationService(repository, search_index)


def get_pageable(
    page: int = Query(0, ge=0, le=MAX_PAGE_INDEX, description="Page index (0-based)"),
    size: int = Query(settings.default_page_size, ge=1, description="Page size"),
    sort: Optional[list[str]] = Query(None, description="Sort criteria: property[,asc|desc]"),
) -> Pageable:
    """Build the pagination request from query parameters."""
    return Pageable.of(page=page, size=size, sort=sort, max_size=settings.max_page_size)


# Type aliases for dependency injection
ServiceDep = Annotated[ConsultationService, Depends(get_consultation_service)]
PageableDep = Annotated[Pageable, Depends(get_pageable)]
