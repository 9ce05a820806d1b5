"""Tests for the DuckDB consultation repository (in-memory)."""

import pytest

from consultation_service.adapters.storage import DuckDBConsultationRepository
from consultation_service.domain.consultation import ConsultationDTO
from consultation_service.domain.pagination import Pageable, SortOrder
from consultation_service.domain.ports import StorageError
from consultation_service.infrastructure.config_manager import DatabaseConfig


@pytest.fixture
def repository():
    """In-memory repository, closed after the test."""
    repo = DuckDBConsultationRepository(db_path=":memory:")
    assert repo.initialize_schema().is_success()
    yield repo
    repo.close()


def _save(repository, **fields) -> ConsultationDTO:
    result = repository.save(ConsultationDTO(**fields))
    assert result.is_success(), result.error
    return result.value


class TestInitialization:
    """Test adapter construction."""

    def test_defaults_to_memory(self):
        """Test that the adapter defaults to an in-memory database."""
        repo = DuckDBConsultationRepository()

        assert repo.db_path == ":memory:"
        assert repo.db_config.db_type == "duckdb"

    def test_rejects_postgresql_config(self):
        """Test that a PostgreSQL configuration is refused."""
        config = DatabaseConfig(db_type="postgresql", host="localhost", database="db")

        with pytest.raises(StorageError):
            DuckDBConsultationRepository(db_config=config)

    def test_file_database(self, tmp_path):
        """Test that records persist in a file database across adapter instances."""
        db_file = tmp_path / "consultations.duckdb"
        repo = DuckDBConsultationRepository(db_config=DatabaseConfig(db_type="duckdb", db_path=str(db_file)))

        saved = _save(repo, name="x")
        repo.close()

        reopened = DuckDBConsultationRepository(db_path=str(db_file))
        assert reopened.find_by_id(saved.id).value.payload() == {"name": "x"}
        reopened.close()

    def test_initialize_schema_is_idempotent(self, repository):
        """Test that schema initialization can run repeatedly."""
        assert repository.initialize_schema().is_success()
        assert repository._initialized


class TestSave:
    """Test insert and update semantics."""

    def test_insert_assigns_increasing_ids(self, repository):
        """Test that inserts get ascending generated ids."""
        first = _save(repository, name="a")
        second = _save(repository, name="b")

        assert first.id is not None
        assert second.id > first.id

    def test_update_replaces_payload(self, repository):
        """Test that saving with an id replaces the stored fields."""
        saved = _save(repository, name="a", notes="old")

        _save(repository, id=saved.id, name="b")

        assert repository.find_by_id(saved.id).value.payload() == {"name": "b"}
        assert repository.count().value == 1

    def test_update_unknown_id_creates_record(self, repository):
        """Test that saving an unknown id stores the record under it."""
        _save(repository, id=10, name="ghost")

        assert repository.find_by_id(10).value.payload() == {"name": "ghost"}

    def test_insert_after_explicit_id_does_not_collide(self, repository):
        """Test that generated ids skip past explicitly stored ids."""
        _save(repository, name="a")
        _save(repository, id=10, name="explicit")

        inserted = _save(repository, name="b")

        assert inserted.id == 11
        assert repository.count().value == 3

    def test_nested_payload_round_trips(self, repository):
        """Test that nested JSON fields come back unchanged."""
        payload = {"name": "a", "vitals": {"bp": [120, 80]}, "followUp": True}

        saved = _save(repository, **payload)

        assert repository.find_by_id(saved.id).value.payload() == payload


class TestFind:
    """Test lookups and pagination."""

    def test_find_by_id_absent(self, repository):
        """Test that an unknown id yields no record."""
        result = repository.find_by_id(999)

        assert result.is_success()
        assert result.value is None

    def test_find_all_pages_in_id_order(self, repository):
        """Test paging in ascending id order with the total count."""
        for i in range(5):
            _save(repository, name=f"c{i}")

        page = repository.find_all(Pageable(page=1, size=2)).value

        assert page.total_elements == 5
        assert [c.name for c in page.content] == ["c2", "c3"]

    def test_find_all_beyond_last_page(self, repository):
        """Test that a page past the end is empty but keeps the total."""
        _save(repository, name="a")

        page = repository.find_all(Pageable(page=4, size=10)).value

        assert page.content == []
        assert page.total_elements == 1

    def test_find_all_sorted_by_payload_field(self, repository):
        """Test sorting by a stored field."""
        for name in ("b", "c", "a"):
            _save(repository, name=name)

        page = repository.find_all(Pageable(sort=(SortOrder("name", "desc"),))).value

        assert [c.name for c in page.content] == ["c", "b", "a"]

    def test_find_all_sorts_numbers_by_value(self, repository):
        """Test that numeric fields sort by value rather than as text."""
        for n in (10, 100, 9):
            _save(repository, n=n)

        page = repository.find_all(Pageable(sort=(SortOrder("n", "asc"),))).value

        assert [c.n for c in page.content] == [9, 10, 100]

    def test_find_all_sorts_numbers_before_text(self, repository):
        """Test that numbers come before text values and missing values come last."""
        for n in ("b", 20, "a", 3.5):
            _save(repository, n=n)
        _save(repository, name="no n")

        page = repository.find_all(Pageable(sort=(SortOrder("n", "asc"),))).value

        assert [getattr(c, "n", None) for c in page.content] == [3.5, 20, "a", "b", None]

    def test_find_all_sorted_by_id_descending(self, repository):
        """Test sorting by id in descending order."""
        ids = [_save(repository, name=n).id for n in ("a", "b", "c")]

        page = repository.find_all(Pageable(sort=(SortOrder("id", "desc"),))).value

        assert [c.id for c in page.content] == list(reversed(ids))

    def test_unsafe_sort_property_is_ignored(self, repository):
        """Test that a sort property that is not an identifier is dropped."""
        _save(repository, name="a")

        result = repository.find_all(Pageable(sort=(SortOrder("name') --", "asc"),)))

        assert result.is_success()
        assert len(result.value.content) == 1

    def test_find_all_unpaged_streams_everything(self, repository, monkeypatch):
        """Test that an unpaged read returns every record across batches."""
        monkeypatch.setattr(
            "consultation_service.adapters.storage.duckdb_adapter.STREAM_BATCH_SIZE", 2
        )
        for i in range(5):
            _save(repository, name=f"c{i}")

        names = [c.name for c in repository.find_all_unpaged()]

        assert names == ["c0", "c1", "c2", "c3", "c4"]


class TestDelete:
    """Test deletion."""

    def test_delete_existing(self, repository):
        """Test deletion of a stored record."""
        saved = _save(repository, name="a")

        assert repository.delete_by_id(saved.id).is_success()
        assert repository.find_by_id(saved.id).value is None

    def test_delete_absent_is_success(self, repository):
        """Test that deleting an unknown id succeeds."""
        assert repository.delete_by_id(12345).is_success()


class TestQueryAndClose:
    """Test the health-check probe and connection lifecycle."""

    def test_query(self, repository):
        """Test running a raw query."""
        result = repository.query("SELECT 1")

        assert result.is_success()
        assert result.value == [(1,)]

    def test_invalid_query_is_failure(self, repository):
        """Test that a failing query is reported as a failure result."""
        result = repository.query("SELECT * FROM missing_table")

        assert result.is_failure()
        assert result.error_type == "StorageError"

    def test_close_is_idempotent(self):
        """Test that closing twice is harmless."""
        repo = DuckDBConsultationRepository()
        repo.initialize_schema()

        repo.close()
        repo.close()

        assert repo._connection is None
