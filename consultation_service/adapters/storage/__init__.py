"""Storage adapters for the Consultation service.

This module contains storage adapters that implement the ConsultationRepositoryPort
interface for persisting consultations in a relational store.
"""

from consultation_service.adapters.storage.duckdb_adapter import DuckDBConsultationRepository
from consultation_service.adapters.storage.postgresql_adapter import PostgreSQLConsultationRepository

__all__ = ["DuckDBConsultationRepository", "PostgreSQLConsultationRepository"]
