"""Health check endpoint for the consultation API."""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter

from consultation_service.api.dependencies import RepositoryDep, SearchIndexDep
from consultation_service.api.models.health import DatabaseHealth, HealthResponse, SearchIndexHealth
from consultation_service.domain.ports import ConsultationRepositoryPort, SearchIndexPort
from consultation_service.infrastructure.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix=settings.api_prefix, tags=["health"])


def check_database_health(repository: ConsultationRepositoryPort) -> DatabaseHealth:
    """Check relational store connectivity with a trivial query.

    Parameters:
        repository: Repository adapter instance

    Returns:
        DatabaseHealth: Database health status
    """
    db_type = repository.db_config.db_type if hasattr(repository, 'db_config') else "unknown"

    start_time = time.time()
    result = repository.query("SELECT 1")
    if result.is_success():
        response_time = (time.time() - start_time) * 1000
        return DatabaseHealth(status="connected", type=db_type, response_time_ms=round(response_time, 2))

    logger.warning(f"Database query failed: {result.error}")
    return DatabaseHealth(status="disconnected", type=db_type, response_time_ms=None)


def check_search_index_health(search_index: SearchIndexPort) -> SearchIndexHealth:
    """Check that the search index can be opened."""
    index_name = getattr(search_index, "index_name", "unknown")
    result = search_index.initialize()
    if result.is_success():
        return SearchIndexHealth(status="connected", index=index_name)

    logger.warning(f"Search index check failed: {result.error}")
    return SearchIndexHealth(status="disconnected", index=index_name)


@router.get("/health", response_model=HealthResponse)
def health_check(repository: RepositoryDep, search_index: SearchIndexDep) -> HealthResponse:
    """Health check endpoint.

    Reports the relational store and the search index separately: the service
    is healthy when both are reachable, degraded when only the store is, and
    unhealthy when the store is not.
    """
    db_health = check_database_health(repository)
    index_health = check_search_index_health(search_index)

    if db_health.status == "disconnected":
        overall_status = "unhealthy"
    elif index_health.status == "disconnected":
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        database=db_health,
        search_index=index_health
    )
