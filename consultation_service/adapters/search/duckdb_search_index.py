"""DuckDB Search Index Adapter.

This adapter implements the SearchIndexPort contract with a DuckDB table that
mirrors every persisted consultation as a JSON document plus a lowercased
full-text ``content`` column. It runs on its own DuckDB database, separate
from the relational store, so the index can be dropped and rebuilt at will.

Architecture:
    - Implements SearchIndexPort (Hexagonal Architecture)
    - Query strings are parsed by ``query_parser`` into LIKE conditions
    - Documents are keyed by consultation id; indexing replaces in place
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Iterator, Optional

import duckdb

from consultation_service.adapters.search.query_parser import LIKE_ESCAPE, SearchTerm, parse_query
from consultation_service.adapters.sorting import build_order_by, duckdb_numeric_json_value
from consultation_service.domain.consultation import ConsultationDTO
from consultation_service.domain.pagination import Page, Pageable
from consultation_service.domain.ports import Result, SearchIndexError, SearchIndexPort
from consultation_service.infrastructure.config_manager import SearchConfig

logger = logging.getLogger(__name__)

# Separates values in the content column; terms never contain it
CONTENT_SEPARATOR = "\n"


def _scalar_values(value: Any) -> Iterator[str]:
    """Yield every scalar inside a (possibly nested) JSON value as text."""
    if value is None:
        return
    if isinstance(value, dict):
        for item in value.values():
            yield from _scalar_values(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _scalar_values(item)
    elif isinstance(value, bool):
        yield "true" if value else "false"
    else:
        # Whitespace inside a value is collapsed, leaving newlines to the separator
        yield " ".join(str(value).split())


def build_content(payload: dict[str, Any]) -> str:
    """Build the full-text content column for a document.

    Values are separated by newlines, which no query term contains, so a
    phrase only matches inside a single value.
    """
    return CONTENT_SEPARATOR.join(_scalar_values(payload)).lower()


class DuckDBSearchIndex(SearchIndexPort):
    """DuckDB implementation of SearchIndexPort.

    Parameters:
        search_config: SearchConfig from configuration manager (preferred)
        index_path: Path to DuckDB index file (or ':memory:')

    Example Usage:
        ```python
        index = DuckDBSearchIndex(index_path=":memory:")
        index.initialize()
        index.index(ConsultationDTO(id=1, name="flu"))
        page = index.search("name:flu", Pageable()).value
        ```
    """

    def __init__(
        self,
        search_config: Optional[SearchConfig] = None,
        index_path: Optional[str] = None
    ):
        self.search_config = search_config or SearchConfig(index_path=index_path)
        self.index_path = self.search_config.index_path or ":memory:"
        self.index_name = self.search_config.index_name
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self._initialized = False

        if self.index_path != ":memory:":
            index_path_obj = Path(self.index_path)
            if not index_path_obj.parent.exists():
                raise SearchIndexError(
                    f"Search index directory does not exist: {index_path_obj.parent}",
                    operation="__init__"
                )

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        if self._connection is None:
            try:
                self._connection = duckdb.connect(self.index_path)
                logger.info(f"Connected to search index: {self.index_path}")
            except Exception as e:
                raise SearchIndexError(
                    f"Failed to open search index: {str(e)}",
                    operation="connect",
                    details={"index_path": self.index_path}
                )
        return self._connection

    def _failure(self, operation: str, error: Exception, details: Optional[dict] = None) -> Result:
        error_msg = f"Search index {operation} failed: {str(error)}"
        logger.error(error_msg, exc_info=True)
        return Result.failure_result(
            SearchIndexError(error_msg, operation=operation, details=details),
            error_type="SearchIndexError"
        )

    def initialize(self) -> Result[None]:
        """Create the index table if it does not exist."""
        if self._initialized:
            return Result.success_result(None)

        try:
            with self._lock:
                self._get_connection().execute(f"""
                    CREATE TABLE IF NOT EXISTS {self.index_name} (
                        id BIGINT PRIMARY KEY,
                        document JSON NOT NULL,
                        content VARCHAR NOT NULL
                    )
                """)
                self._initialized = True
            logger.info(f"Search index '{self.index_name}' initialized")
            return Result.success_result(None)
        except Exception as e:
            return self._failure("initialize", e)

    def index(self, consultation: ConsultationDTO) -> Result[None]:
        """Add or replace the document of a persisted consultation."""
        if consultation.id is None:
            return Result.failure_result(
                SearchIndexError("Cannot index a consultation without an id", operation="index"),
                error_type="SearchIndexError"
            )

        init_result = self.initialize()
        if not init_result.is_success():
            return init_result

        payload = consultation.payload()
        try:
            with self._lock:
                self._get_connection().execute(
                    f"""
                    INSERT INTO {self.index_name} (id, document, content) VALUES (?, ?, ?)
                    ON CONFLICT (id) DO UPDATE SET document = excluded.document, content = excluded.content
                    """,
                    [consultation.id, json.dumps(payload), build_content(payload)]
                )
            return Result.success_result(None)
        except Exception as e:
            return self._failure("index", e, {"id": consultation.id})

    def delete(self, consultation_id: int) -> Result[None]:
        """Remove a document; absent ids are not an error."""
        init_result = self.initialize()
        if not init_result.is_success():
            return init_result

        try:
            with self._lock:
                self._get_connection().execute(f"DELETE FROM {self.index_name} WHERE id = ?", [consultation_id])
            return Result.success_result(None)
        except Exception as e:
            return self._failure("delete", e, {"id": consultation_id})

    @staticmethod
    def _term_condition(term: SearchTerm) -> tuple[str, list]:
        if term.matches_all:
            condition, params = "TRUE", []
        else:
            if term.field is None:
                expression = "content"
            else:
                # field paths are dotted identifiers, checked by the parser
                expression = f"lower(COALESCE(json_extract_string(document, '$.{term.field}'), ''))"
            condition = f"{expression} LIKE ? ESCAPE '{LIKE_ESCAPE}'"
            params = [term.like_pattern()]

        if term.negated:
            condition = f"NOT ({condition})"
        return condition, params

    def _where_clause(self, query: str) -> tuple[str, list]:
        parsed = parse_query(query)
        if parsed.matches_all:
            return "", []

        clauses = []
        params: list = []
        for clause in parsed.clauses:
            conditions = []
            for term in clause:
                condition, term_params = self._term_condition(term)
                conditions.append(condition)
                params.extend(term_params)
            clauses.append("(" + " OR ".join(conditions) + ")")

        return "WHERE " + " AND ".join(clauses), params

    def search(self, query: str, pageable: Pageable) -> Result[Page[ConsultationDTO]]:
        """Get one page of consultations matching a query string."""
        init_result = self.initialize()
        if not init_result.is_success():
            return init_result

        where, params = self._where_clause(query)
        order_by = build_order_by(
            pageable,
            id_column="id",
            json_expression=lambda prop: f"json_extract_string(document, '$.{prop}')",
            numeric_expression=lambda prop: duckdb_numeric_json_value("document", prop)
        )

        try:
            with self._lock:
                conn = self._get_connection()
                total = conn.execute(f"SELECT COUNT(*) FROM {self.index_name} {where}", params).fetchone()[0]
                rows = conn.execute(
                    f"SELECT id, document FROM {self.index_name} {where} {order_by} LIMIT ? OFFSET ?",
                    params + [pageable.size, pageable.offset]
                ).fetchall()

            content = [ConsultationDTO.from_storage(int(row[0]), json.loads(row[1])) for row in rows]
            return Result.success_result(Page(content=content, total_elements=int(total), pageable=pageable))
        except Exception as e:
            return self._failure("search", e, {"query": query})

    def clear(self) -> Result[None]:
        """Remove every document from the index."""
        init_result = self.initialize()
        if not init_result.is_success():
            return init_result

        try:
            with self._lock:
                self._get_connection().execute(f"DELETE FROM {self.index_name}")
            logger.info(f"Search index '{self.index_name}' cleared")
            return Result.success_result(None)
        except Exception as e:
            return self._failure("clear", e)

    def close(self) -> None:
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
                self._initialized = False
