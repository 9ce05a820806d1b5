"""Tests for the DuckDB-backed search index (in-memory)."""

import pytest

from consultation_service.adapters.search import DuckDBSearchIndex
from consultation_service.adapters.search.duckdb_search_index import build_content
from consultation_service.domain.consultation import ConsultationDTO
from consultation_service.domain.pagination import Pageable, SortOrder
from consultation_service.infrastructure.config_manager import SearchConfig


@pytest.fixture
def index():
    search_index = DuckDBSearchIndex(index_path=":memory:")
    assert search_index.initialize().is_success()
    yield search_index
    search_index.close()


@pytest.fixture
def seeded(index):
    """Index holding three consultations."""
    for dto in (
        ConsultationDTO(id=1, name="Flu check", doctor="House", followUp=True),
        ConsultationDTO(id=2, name="Cold", doctor="Wilson", notes={"text": "runny nose"}),
        ConsultationDTO(id=3, name="Flu shot", doctor="Cuddy", tags=["vaccine", "100%_covered"]),
    ):
        assert index.index(dto).is_success()
    return index


def _ids(index, query, pageable=None):
    result = index.search(query, pageable or Pageable())
    assert result.is_success(), result.error
    return [c.id for c in result.value.content]


class TestBuildContent:
    """Test the full-text content column."""

    def test_flattens_nested_values(self):
        """Test that nested values are flattened one per line."""
        content = build_content({"name": "Flu", "notes": {"text": "Rest"}, "tags": ["A", 2], "x": None})

        assert content == "flu\nrest\na\n2"

    def test_booleans(self):
        """Test the text of boolean values."""
        assert build_content({"followUp": True, "paid": False}) == "true\nfalse"

    def test_whitespace_inside_values_is_collapsed(self):
        """Test that whitespace inside a value collapses to single spaces."""
        assert build_content({"name": "Flu\n  check", "doctor": "House"}) == "flu check\nhouse"


class TestIndexing:
    """Test index, delete and clear."""

    def test_index_name_from_config(self):
        """Test that the table name comes from the search configuration."""
        search_index = DuckDBSearchIndex(search_config=SearchConfig(index_name="custom_index"))

        assert search_index.index_name == "custom_index"
        assert search_index.initialize().is_success()
        search_index.close()

    def test_index_requires_id(self, index):
        """Test that a consultation without an id cannot be indexed."""
        result = index.index(ConsultationDTO(name="x"))

        assert result.is_failure()
        assert result.error_type == "SearchIndexError"

    def test_reindexing_replaces_document(self, seeded):
        """Test that indexing an id again replaces its document."""
        seeded.index(ConsultationDTO(id=2, name="Migraine"))

        assert _ids(seeded, "cold") == []
        assert _ids(seeded, "migraine") == [2]

    def test_delete(self, seeded):
        """Test removal of a document."""
        assert seeded.delete(1).is_success()

        assert _ids(seeded, "*") == [2, 3]

    def test_delete_absent_is_success(self, index):
        """Test that removing an unknown id succeeds."""
        assert index.delete(99).is_success()

    def test_clear(self, seeded):
        """Test removal of every document."""
        assert seeded.clear().is_success()

        assert _ids(seeded, "*") == []


class TestSearch:
    """Test query evaluation."""

    @pytest.mark.parametrize("query,expected", [
        ("*", [1, 2, 3]),
        ("", [1, 2, 3]),
        ("flu", [1, 3]),
        ("FLU", [1, 3]),
        ("flu shot", [3]),
        ('"flu check"', [1]),
        ("flu OR cold", [1, 2, 3]),
        ("-flu", [2]),
        ("NOT flu", [2]),
        ("doctor:house", [1]),
        ("doctor:hou*", [1]),
        ("doctor:w?lson", [2]),
        ("name:house", []),
        ("nose", [2]),
        ("true", [1]),
        ("vaccine", [3]),
        ("100%_covered", [3]),
        ("100%", [3]),
        ("missing:anything", []),
        ("-missing:anything", [1, 2, 3]),
        ("notes.text:runny", [2]),
        ("notes.text:wilson", []),
        ("notes.missing:runny", []),
    ])
    def test_queries(self, seeded, query, expected):
        """Test query evaluation against the seeded documents."""
        assert _ids(seeded, query) == expected

    def test_like_metacharacters_match_literally(self, seeded):
        """Test that % and _ in a query match only themselves."""
        seeded.index(ConsultationDTO(id=4, name="1000 covered"))

        assert _ids(seeded, "100%") == [3]
        assert 4 not in _ids(seeded, "100_")

    def test_pagination(self, seeded):
        """Test paging with the total count."""
        result = seeded.search("*", Pageable(page=1, size=2)).value

        assert result.total_elements == 3
        assert [c.id for c in result.content] == [3]

    def test_sorting_by_document_field(self, seeded):
        """Test sorting by a document field."""
        pageable = Pageable(sort=(SortOrder("doctor", "asc"),))

        assert _ids(seeded, "*", pageable) == [3, 1, 2]

    def test_results_carry_full_document(self, seeded):
        """Test that hits carry every stored field."""
        result = seeded.search("cold", Pageable()).value

        assert result.content[0].model_dump() == {
            "id": 2, "name": "Cold", "doctor": "Wilson", "notes": {"text": "runny nose"}
        }

    def test_phrase_does_not_span_fields(self, index):
        """Test that a phrase must match within a single field value."""
        index.index(ConsultationDTO(id=4, name="Routine visit", notes={"text": "fever"}))

        assert _ids(index, '"visit fever"') == []
        assert _ids(index, '"routine visit"') == [4]
        assert _ids(index, "visit fever") == [4]

    def test_backslash_matches_literally(self, index):
        """Test that a backslash in a query matches only a backslash."""
        index.index(ConsultationDTO(id=5, name="a\\b"))
        index.index(ConsultationDTO(id=6, name="ab"))

        assert _ids(index, "a\\b") == [5]
        assert _ids(index, "name:a\\b") == [5]

    def test_numeric_field_sorts_by_value(self, index):
        """Test that numeric fields sort by value ahead of text and missing values."""
        for consultation_id, n in ((1, 10), (2, 100), (3, 9), (4, "abc"), (5, 2.5)):
            index.index(ConsultationDTO(id=consultation_id, n=n))
        index.index(ConsultationDTO(id=6, name="no n"))

        assert _ids(index, "*", Pageable(sort=(SortOrder("n", "asc"),))) == [5, 3, 1, 2, 4, 6]
        assert _ids(index, "*", Pageable(sort=(SortOrder("n", "desc"),))) == [2, 1, 3, 5, 4, 6]
