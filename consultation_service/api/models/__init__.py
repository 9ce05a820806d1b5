"""API response models."""

from consultation_service.api.models.health import DatabaseHealth, HealthResponse, SearchIndexHealth

__all__ = ["DatabaseHealth", "HealthResponse", "SearchIndexHealth"]
