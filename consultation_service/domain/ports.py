"""Domain Ports - Abstract Contracts for Consultation Persistence and Search.

This module defines the Port interfaces (abstract contracts) that Adapters must implement.
Following Hexagonal Architecture, the Domain Core defines what it needs, not how it's provided.

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Storage adapters (DuckDB, PostgreSQL) implement ConsultationRepositoryPort
    - Search adapters implement SearchIndexPort
    - Outcomes are communicated through Result objects; exceptions are reserved
      for adapter construction and connection failures
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Iterator, Optional, TypeVar, Union

from consultation_service.domain.consultation import ConsultationDTO
from consultation_service.domain.pagination import Page, Pageable

# Type variable for Result generic
T = TypeVar('T')


# ============================================================================
# Result Type for Success/Failure Communication
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Result type for communicating success or failure without exceptions.

    Attributes:
        success: True if the operation succeeded, False otherwise
        value: The successful result value (only present if success=True)
        error: Error information (only present if success=False)
        error_type: Type of error (StorageError, SearchIndexError, etc.)
        error_details: Additional error context (operation, id, etc.)

    Example:
        ```python
        result = repository.find_by_id(42)
        if result.is_success():
            consultation = result.value
        else:
            logger.error(f"Lookup failed: {result.error}")
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Create a successful result.

        Parameters:
            value: The successful result value

        Returns:
            Result: Success result with the value
        """
        return cls(
            success=True,
            value=value,
            error=None,
            error_type=None,
            error_details=None
        )

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Create a failure result.

        Parameters:
            error: Error message or exception
            error_type: Type of error (e.g., "StorageError", "SearchIndexError")
            error_details: Additional context (operation, id, etc.)

        Returns:
            Result: Failure result with error information
        """
        error_message = str(error) if isinstance(error, Exception) else error
        error_type_name = error_type or (type(error).__name__ if isinstance(error, Exception) else "UnknownError")

        return cls(
            success=False,
            value=None,
            error=error_message,
            error_type=error_type_name,
            error_details=error_details or {}
        )

    def is_success(self) -> bool:
        """Check if result is successful."""
        return self.success

    def is_failure(self) -> bool:
        """Check if result is a failure."""
        return not self.success


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class ConsultationError(Exception):
    """Base exception for all consultation service errors."""
    pass


class StorageError(ConsultationError):
    """Raised when the relational store cannot be reached or queried.

    Attributes:
        operation: The storage operation that failed (connect, save, etc.)
        details: Additional error details
    """

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.operation = operation
        self.details = details or {}


class SearchIndexError(ConsultationError):
    """Raised when the search index cannot be reached or queried.

    Attributes:
        operation: The index operation that failed (index, delete, search)
        details: Additional error details
    """

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.operation = operation
        self.details = details or {}


class BadRequestAlertError(ConsultationError):
    """Raised when a client violates the identifier-presence contract.

    Attributes:
        entity_name: Entity the request was about
        error_key: Machine-readable reason code (``idexists``, ``idnull``)
    """

    def __init__(self, message: str, entity_name: str, error_key: str):
        super().__init__(message)
        self.message = message
        self.entity_name = entity_name
        self.error_key = error_key


# ============================================================================
# Ports
# ============================================================================

class ConsultationRepositoryPort(ABC):
    """Abstract contract for the relational store holding consultations.

    The repository owns record identity: ``save`` without an id inserts and
    assigns one, ``save`` with an id replaces the record stored under it.

    Example Usage:
        ```python
        repository = DuckDBConsultationRepository(db_path=":memory:")
        repository.initialize_schema()
        saved = repository.save(ConsultationDTO(name="x")).value
        ```
    """

    @abstractmethod
    def initialize_schema(self) -> Result[None]:
        """Create tables, sequences and indexes if they do not exist."""
        pass

    @abstractmethod
    def save(self, consultation: ConsultationDTO) -> Result[ConsultationDTO]:
        """Insert or update a consultation.

        Parameters:
            consultation: Record to persist; ``id`` None means insert

        Returns:
            Result[ConsultationDTO]: The persisted record with its identifier
        """
        pass

    @abstractmethod
    def find_all(self, pageable: Pageable) -> Result[Page[ConsultationDTO]]:
        """Get one page of consultations in the requested sort order."""
        pass

    @abstractmethod
    def find_all_unpaged(self) -> Iterator[ConsultationDTO]:
        """Stream every stored consultation ordered by identifier.

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    def find_by_id(self, consultation_id: int) -> Result[Optional[ConsultationDTO]]:
        """Get a consultation by identifier; the value is None if absent."""
        pass

    @abstractmethod
    def delete_by_id(self, consultation_id: int) -> Result[None]:
        """Delete a consultation. Deleting an absent identifier succeeds."""
        pass

    @abstractmethod
    def count(self) -> Result[int]:
        """Count stored consultations."""
        pass

    def query(self, sql: str) -> Result[list]:
        """Run a raw read-only statement (used by health checks).

        Note:
            Default implementation reports the operation as unsupported.
            Adapters can override to expose connectivity probes.
        """
        return Result.failure_result(
            f"{type(self).__name__} does not support raw queries",
            error_type="StorageError"
        )

    def close(self) -> None:
        """Release connections held by the adapter."""
        return None


class SearchIndexPort(ABC):
    """Abstract contract for the search index mirroring consultations.

    Documents are keyed by consultation identifier; indexing an existing
    identifier replaces the document.
    """

    @abstractmethod
    def initialize(self) -> Result[None]:
        """Create the index structures if they do not exist."""
        pass

    @abstractmethod
    def index(self, consultation: ConsultationDTO) -> Result[None]:
        """Add or replace the document for a persisted consultation."""
        pass

    @abstractmethod
    def delete(self, consultation_id: int) -> Result[None]:
        """Remove a document. Removing an absent identifier succeeds."""
        pass

    @abstractmethod
    def search(self, query: str, pageable: Pageable) -> Result[Page[ConsultationDTO]]:
        """Get one page of consultations matching a query string."""
        pass

    @abstractmethod
    def clear(self) -> Result[None]:
        """Remove every document from the index."""
        pass

    def close(self) -> None:
        """Release connections held by the adapter."""
        return None
