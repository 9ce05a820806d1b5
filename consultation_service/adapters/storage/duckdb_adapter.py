"""DuckDB Storage Adapter.

This adapter implements the ConsultationRepositoryPort contract on top of
DuckDB, an in-process database. It is the default store and the one used by
the test suite (in-memory).

Architecture:
    - Implements ConsultationRepositoryPort (Hexagonal Architecture)
    - Isolated from domain core - only depends on ports and models
    - Opaque consultation fields are stored as a JSON payload next to the id
"""

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

import duckdb

from consultation_service.adapters.sorting import build_order_by, duckdb_numeric_json_value
from consultation_service.domain.consultation import ConsultationDTO
from consultation_service.domain.pagination import Page, Pageable
from consultation_service.domain.ports import (
    ConsultationRepositoryPort,
    Result,
    StorageError,
)
from consultation_service.infrastructure.config_manager import DatabaseConfig

logger = logging.getLogger(__name__)

TABLE_NAME = "consultation"
SEQUENCE_NAME = "consultation_id_seq"

# Rows fetched per round trip when streaming the whole table
STREAM_BATCH_SIZE = 500


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DuckDBConsultationRepository(ConsultationRepositoryPort):
    """DuckDB implementation of ConsultationRepositoryPort.

    Parameters:
        db_config: DatabaseConfig from configuration manager (preferred)
        db_path: Path to DuckDB database file (or ':memory:' for in-memory)

    Example Usage:
        ```python
        from consultation_service.infrastructure.config_manager import get_database_config

        repository = DuckDBConsultationRepository(db_config=get_database_config())
        repository.initialize_schema()
        result = repository.save(ConsultationDTO(name="x"))
        ```
    """

    def __init__(
        self,
        db_config: Optional[DatabaseConfig] = None,
        db_path: Optional[str] = None
    ):
        """Initialize DuckDB adapter.

        Note:
            If both db_config and db_path are provided, db_config takes precedence.
            If neither is provided, defaults to in-memory database.
        """
        if db_config:
            if db_config.db_type != "duckdb":
                raise StorageError(
                    f"DatabaseConfig type '{db_config.db_type}' does not match DuckDB adapter",
                    operation="__init__"
                )
            self.db_path = db_config.db_path or ":memory:"
        else:
            self.db_path = db_path or ":memory:"

        self.db_config = db_config or DatabaseConfig(db_type="duckdb", db_path=self.db_path)
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self._initialized = False

        if self.db_path != ":memory:":
            db_path_obj = Path(self.db_path)
            if not db_path_obj.parent.exists():
                raise StorageError(
                    f"Database directory does not exist: {db_path_obj.parent}",
                    operation="__init__"
                )

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get or create DuckDB connection (created lazily, then reused)."""
        if self._connection is None:
            try:
                self._connection = duckdb.connect(self.db_path)
                logger.info(f"Connected to DuckDB database: {self.db_path}")
            except Exception as e:
                raise StorageError(
                    f"Failed to connect to DuckDB: {str(e)}",
                    operation="connect",
                    details={"db_path": self.db_path}
                )
        return self._connection

    def initialize_schema(self) -> Result[None]:
        """Initialize the consultation table and its id sequence.

        Returns:
            Result[None]: Success or failure result
        """
        if self._initialized:
            return Result.success_result(None)

        try:
            with self._lock:
                conn = self._get_connection()
                conn.execute(f"CREATE SEQUENCE IF NOT EXISTS {SEQUENCE_NAME} START 1")
                conn.execute(f"""
                    CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                        id BIGINT PRIMARY KEY,
                        payload JSON NOT NULL,
                        created_at TIMESTAMP NOT NULL,
                        updated_at TIMESTAMP NOT NULL
                    )
                """)
                self._initialized = True

            logger.info("DuckDB schema initialized successfully")
            return Result.success_result(None)

        except Exception as e:
            error_msg = f"Failed to initialize schema: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="initialize_schema"),
                error_type="StorageError"
            )

    def _next_id(self, conn: duckdb.DuckDBPyConnection) -> int:
        # Skip past ids that were stored explicitly through an update
        row = conn.execute(
            f"SELECT GREATEST(nextval('{SEQUENCE_NAME}'), "
            f"COALESCE((SELECT MAX(id) FROM {TABLE_NAME}), 0) + 1)"
        ).fetchone()
        return int(row[0])

    def save(self, consultation: ConsultationDTO) -> Result[ConsultationDTO]:
        """Insert a new consultation or replace an existing one.

        Parameters:
            consultation: Record to persist; ``id`` None means insert

        Returns:
            Result[ConsultationDTO]: The persisted record
        """
        init_result = self.initialize_schema()
        if not init_result.is_success():
            return init_result

        payload = consultation.payload()
        now = _utcnow()

        try:
            with self._lock:
                conn = self._get_connection()
                if consultation.id is None:
                    consultation_id = self._next_id(conn)
                    conn.execute(
                        f"INSERT INTO {TABLE_NAME} (id, payload, created_at, updated_at) VALUES (?, ?, ?, ?)",
                        [consultation_id, json.dumps(payload), now, now]
                    )
                else:
                    consultation_id = consultation.id
                    conn.execute(
                        f"""
                        INSERT INTO {TABLE_NAME} (id, payload, created_at, updated_at) VALUES (?, ?, ?, ?)
                        ON CONFLICT (id) DO UPDATE SET payload = excluded.payload, updated_at = excluded.updated_at
                        """,
                        [consultation_id, json.dumps(payload), now, now]
                    )

            return Result.success_result(ConsultationDTO.from_storage(consultation_id, payload))

        except Exception as e:
            error_msg = f"Failed to save consultation: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="save", details={"id": consultation.id}),
                error_type="StorageError"
            )

    @staticmethod
    def _to_dto(row: tuple) -> ConsultationDTO:
        consultation_id, payload = row
        return ConsultationDTO.from_storage(int(consultation_id), json.loads(payload))

    def find_all(self, pageable: Pageable) -> Result[Page[ConsultationDTO]]:
        """Get one page of consultations.

        Non-id sort properties compare numbers by value, then other values as text.
        """
        init_result = self.initialize_schema()
        if not init_result.is_success():
            return init_result

        order_by = build_order_by(
            pageable,
            id_column="id",
            json_expression=lambda prop: f"json_extract_string(payload, '$.{prop}')",
            numeric_expression=lambda prop: duckdb_numeric_json_value("payload", prop)
        )

        try:
            with self._lock:
                conn = self._get_connection()
                total = conn.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}").fetchone()[0]
                rows = conn.execute(
                    f"SELECT id, payload FROM {TABLE_NAME} {order_by} LIMIT ? OFFSET ?",
                    [pageable.size, pageable.offset]
                ).fetchall()

            return Result.success_result(
                Page(content=[self._to_dto(row) for row in rows], total_elements=int(total), pageable=pageable)
            )

        except Exception as e:
            error_msg = f"Failed to query consultations: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="find_all"),
                error_type="StorageError"
            )

    def find_all_unpaged(self) -> Iterator[ConsultationDTO]:
        """Stream every consultation ordered by id, in batches."""
        init_result = self.initialize_schema()
        if not init_result.is_success():
            raise StorageError(init_result.error, operation="find_all_unpaged")

        last_id = 0
        while True:
            with self._lock:
                rows = self._get_connection().execute(
                    f"SELECT id, payload FROM {TABLE_NAME} WHERE id > ? ORDER BY id ASC LIMIT ?",
                    [last_id, STREAM_BATCH_SIZE]
                ).fetchall()

            if not rows:
                return

            for row in rows:
                yield self._to_dto(row)
            last_id = int(rows[-1][0])

    def find_by_id(self, consultation_id: int) -> Result[Optional[ConsultationDTO]]:
        """Get a consultation by id (value is None when absent)."""
        init_result = self.initialize_schema()
        if not init_result.is_success():
            return init_result

        try:
            with self._lock:
                row = self._get_connection().execute(
                    f"SELECT id, payload FROM {TABLE_NAME} WHERE id = ?",
                    [consultation_id]
                ).fetchone()

            return Result.success_result(self._to_dto(row) if row else None)

        except Exception as e:
            error_msg = f"Failed to get consultation {consultation_id}: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="find_by_id", details={"id": consultation_id}),
                error_type="StorageError"
            )

    def delete_by_id(self, consultation_id: int) -> Result[None]:
        """Delete a consultation; absent ids are not an error."""
        init_result = self.initialize_schema()
        if not init_result.is_success():
            return init_result

        try:
            with self._lock:
                self._get_connection().execute(f"DELETE FROM {TABLE_NAME} WHERE id = ?", [consultation_id])
            return Result.success_result(None)

        except Exception as e:
            error_msg = f"Failed to delete consultation {consultation_id}: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="delete_by_id", details={"id": consultation_id}),
                error_type="StorageError"
            )

    def count(self) -> Result[int]:
        init_result = self.initialize_schema()
        if not init_result.is_success():
            return init_result

        try:
            with self._lock:
                total = self._get_connection().execute(f"SELECT COUNT(*) FROM {TABLE_NAME}").fetchone()[0]
            return Result.success_result(int(total))
        except Exception as e:
            return Result.failure_result(StorageError(str(e), operation="count"), error_type="StorageError")

    def query(self, sql: str) -> Result[list]:
        """Run a raw statement and return all rows."""
        try:
            with self._lock:
                rows = self._get_connection().execute(sql).fetchall()
            return Result.success_result(rows)
        except Exception as e:
            return Result.failure_result(StorageError(str(e), operation="query"), error_type="StorageError")

    def close(self) -> None:
        """Close the DuckDB connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
                self._initialized = False
                logger.info("DuckDB connection closed")
