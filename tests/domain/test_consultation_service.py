"""Tests for ConsultationService.

Both ports are mocked so the tests pin down the order and the contents of the
calls the service makes.
"""

from unittest.mock import MagicMock, call

import pytest

from consultation_service.domain.consultation import ConsultationDTO
from consultation_service.domain.pagination import Page, Pageable
from consultation_service.domain.ports import (
    ConsultationRepositoryPort,
    Result,
    SearchIndexError,
    SearchIndexPort,
    StorageError,
)
from consultation_service.domain.services import ConsultationService


@pytest.fixture
def repository():
    return MagicMock(spec=ConsultationRepositoryPort)


@pytest.fixture
def search_index():
    index = MagicMock(spec=SearchIndexPort)
    index.index.return_value = Result.success_result(None)
    index.delete.return_value = Result.success_result(None)
    index.clear.return_value = Result.success_result(None)
    return index


@pytest.fixture
def service(repository, search_index):
    return ConsultationService(repository, search_index)


class TestSave:
    """Test save: store first, then index the stored record."""

    def test_save_indexes_persisted_record(self, service, repository, search_index):
        """Test that a saved consultation is indexed as stored."""
        stored = ConsultationDTO(id=1, name="x")
        repository.save.return_value = Result.success_result(stored)

        result = service.save(ConsultationDTO(name="x"))

        assert result.is_success()
        assert result.value == stored
        search_index.index.assert_called_once_with(stored)

    def test_storage_failure_skips_indexing(self, service, repository, search_index):
        """Test that nothing is indexed when the store fails."""
        repository.save.return_value = Result.failure_result(StorageError("down"), error_type="StorageError")

        result = service.save(ConsultationDTO(name="x"))

        assert result.is_failure()
        assert result.error_type == "StorageError"
        search_index.index.assert_not_called()

    def test_index_failure_is_reported_with_id(self, service, repository, search_index):
        """Test that an indexing failure is reported with the stored id."""
        repository.save.return_value = Result.success_result(ConsultationDTO(id=7, name="x"))
        search_index.index.return_value = Result.failure_result(
            SearchIndexError("index down"), error_type="SearchIndexError"
        )

        result = service.save(ConsultationDTO(name="x"))

        assert result.is_failure()
        assert result.error_type == "SearchIndexError"
        assert result.error_details["id"] == 7


class TestReads:
    """Test that reads are delegated unchanged."""

    def test_find_all(self, service, repository):
        """Test that paging is delegated to the repository."""
        page = Page(content=[ConsultationDTO(id=1)], total_elements=1, pageable=Pageable())
        repository.find_all.return_value = Result.success_result(page)
        pageable = Pageable(page=0, size=5)

        result = service.find_all(pageable)

        repository.find_all.assert_called_once_with(pageable)
        assert result.value is page

    def test_find_one_absent(self, service, repository):
        """Test lookup of an unknown id."""
        repository.find_by_id.return_value = Result.success_result(None)

        result = service.find_one(42)

        repository.find_by_id.assert_called_once_with(42)
        assert result.is_success()
        assert result.value is None

    def test_search_uses_index(self, service, repository, search_index):
        """Test that search goes to the index, not the repository."""
        page = Page(content=[], total_elements=0, pageable=Pageable())
        search_index.search.return_value = Result.success_result(page)

        result = service.search("name:x", Pageable())

        search_index.search.assert_called_once_with("name:x", Pageable())
        repository.find_all.assert_not_called()
        assert result.value is page


class TestDelete:
    """Test delete removes from both store and index."""

    def test_delete(self, service, repository, search_index):
        """Test that delete removes the record and then the document."""
        repository.delete_by_id.return_value = Result.success_result(None)

        result = service.delete(3)

        assert result.is_success()
        repository.delete_by_id.assert_called_once_with(3)
        search_index.delete.assert_called_once_with(3)

    def test_delete_storage_failure_keeps_index(self, service, repository, search_index):
        """Test that the document stays when the store delete fails."""
        repository.delete_by_id.return_value = Result.failure_result("down", error_type="StorageError")

        result = service.delete(3)

        assert result.is_failure()
        search_index.delete.assert_not_called()


class TestReindex:
    """Test rebuilding the index from the store."""

    def test_reindex_clears_then_indexes_everything(self, service, repository, search_index):
        """Test that reindex clears the index and then indexes every record."""
        records = [ConsultationDTO(id=1, name="a"), ConsultationDTO(id=2, name="b")]
        repository.find_all_unpaged.return_value = iter(records)

        result = service.reindex()

        assert result.is_success()
        assert result.value == 2
        assert search_index.method_calls[0] == call.clear()
        search_index.index.assert_has_calls([call(records[0]), call(records[1])])

    def test_reindex_stops_on_index_failure(self, service, repository, search_index):
        """Test that reindex stops at the first indexing failure."""
        repository.find_all_unpaged.return_value = iter([ConsultationDTO(id=1), ConsultationDTO(id=2)])
        search_index.index.return_value = Result.failure_result("index down", error_type="SearchIndexError")

        result = service.reindex()

        assert result.is_failure()
        assert search_index.index.call_count == 1

    def test_reindex_storage_exception_becomes_failure(self, service, repository):
        """Test that a storage error while streaming becomes a failure result."""
        def broken_stream():
            yield ConsultationDTO(id=1)
            raise StorageError("connection lost", operation="find_all_unpaged")

        repository.find_all_unpaged.return_value = broken_stream()

        result = service.reindex()

        assert result.is_failure()
        assert result.error_type == "StorageError"
        assert result.error_details == {"indexed": 1}
