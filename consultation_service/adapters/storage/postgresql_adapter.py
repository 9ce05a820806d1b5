"""PostgreSQL Storage Adapter.

This adapter implements the ConsultationRepositoryPort contract on top of
PostgreSQL for production deployments.

Architecture:
    - Implements ConsultationRepositoryPort (Hexagonal Architecture)
    - Isolated from domain core - only depends on ports and models
    - Threaded connection pool, created lazily on first use
    - Opaque consultation fields are stored as a JSONB payload next to the id
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Iterator, Optional

from psycopg2 import pool
from psycopg2.extras import Json

from consultation_service.adapters.sorting import build_order_by
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

# Rows fetched per round trip when streaming the whole table
STREAM_BATCH_SIZE = 500


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PostgreSQLConsultationRepository(ConsultationRepositoryPort):
    """PostgreSQL implementation of ConsultationRepositoryPort.

    Parameters:
        db_config: DatabaseConfig from configuration manager
        max_overflow: Connections allowed on top of the configured pool size

    Example Usage:
        ```python
        from consultation_service.infrastructure.config_manager import get_database_config

        repository = PostgreSQLConsultationRepository(db_config=get_database_config())
        result = repository.initialize_schema()
        ```
    """

    def __init__(self, db_config: DatabaseConfig, max_overflow: int = 10):
        """Initialize PostgreSQL adapter.

        Raises:
            StorageError: If the configuration is not a usable PostgreSQL configuration
        """
        if db_config.db_type != "postgresql":
            raise StorageError(
                f"DatabaseConfig type '{db_config.db_type}' does not match PostgreSQL adapter",
                operation="__init__"
            )

        if db_config.connection_string:
            self.connection_params = {"dsn": db_config.connection_string.get_secret_value()}
        else:
            if not all([db_config.host, db_config.database]):
                raise StorageError(
                    "PostgreSQL DatabaseConfig requires host and database",
                    operation="__init__"
                )

            self.connection_params = {
                "host": db_config.host,
                "port": db_config.port or 5432,
                "database": db_config.database,
                "user": db_config.username,
                "sslmode": db_config.ssl_mode or "prefer",
            }
            if db_config.password:
                self.connection_params["password"] = db_config.password.get_secret_value()

        self.db_config = db_config
        self.pool_size = db_config.pool_size
        self.max_overflow = max_overflow
        self._connection_pool: Optional[pool.ThreadedConnectionPool] = None
        self._pool_lock = threading.Lock()
        self._schema_initialized = False
        self._schema_lock = threading.Lock()

    def _get_connection_pool(self) -> pool.ThreadedConnectionPool:
        """Get or create the PostgreSQL connection pool."""
        if self._connection_pool is None:
            with self._pool_lock:
                if self._connection_pool is None:
                    try:
                        self._connection_pool = pool.ThreadedConnectionPool(
                            minconn=1,
                            maxconn=self.pool_size + self.max_overflow,
                            **self.connection_params
                        )
                        logger.info("Created PostgreSQL connection pool")
                    except Exception as e:
                        raise StorageError(
                            f"Failed to create PostgreSQL connection pool: {str(e)}",
                            operation="connect",
                            details={"host": self.connection_params.get("host", "N/A")}
                        )
        return self._connection_pool

    def _get_connection(self):
        """Get a connection from the pool.

        Raises:
            StorageError: If connection cannot be obtained
        """
        try:
            return self._get_connection_pool().getconn()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(
                f"Failed to get connection from pool: {str(e)}",
                operation="get_connection"
            )

    def _return_connection(self, conn) -> None:
        """Return a connection to the pool."""
        try:
            self._get_connection_pool().putconn(conn)
        except Exception as e:
            logger.warning(f"Error returning connection to pool: {str(e)}")

    def _failure(self, conn, operation: str, error: Exception, details: Optional[dict] = None) -> Result:
        if conn is not None:
            try:
                conn.rollback()
            except Exception as rollback_error:
                logger.warning(f"Rollback failed: {str(rollback_error)}")

        error_msg = f"PostgreSQL {operation} failed: {str(error)}"
        logger.error(error_msg, exc_info=True)
        return Result.failure_result(
            StorageError(error_msg, operation=operation, details=details),
            error_type="StorageError"
        )

    def initialize_schema(self) -> Result[None]:
        """Create the consultation table if it does not exist.

        Note:
            Schema initialization is cached per adapter instance; the cache is
            thread-safe (double-checked locking).
        """
        if self._schema_initialized:
            return Result.success_result(None)

        with self._schema_lock:
            if self._schema_initialized:
                return Result.success_result(None)

            conn = None
            try:
                conn = self._get_connection()
                cursor = conn.cursor()
                cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                    id BIGSERIAL PRIMARY KEY,
                    payload JSONB NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
                """)
                conn.commit()
                self._schema_initialized = True
                logger.info("PostgreSQL schema initialized successfully")
                return Result.success_result(None)

            except Exception as e:
                return self._failure(conn, "initialize_schema", e)
            finally:
                if conn is not None:
                    self._return_connection(conn)

    def save(self, consultation: ConsultationDTO) -> Result[ConsultationDTO]:
        """Insert a new consultation or upsert one under its existing id."""
        init_result = self.initialize_schema()
        if not init_result.is_success():
            return init_result

        payload = consultation.payload()
        now = _utcnow()
        conn = None
        try:
            conn = self._get_connection()
            cursor = conn.cursor()

            if consultation.id is None:
                cursor.execute(
                    f"INSERT INTO {TABLE_NAME} (payload, created_at, updated_at) VALUES (%s, %s, %s) RETURNING id",
                    (Json(payload), now, now)
                )
                consultation_id = cursor.fetchone()[0]
            else:
                cursor.execute(
                    f"""
                    INSERT INTO {TABLE_NAME} (id, payload, created_at, updated_at) VALUES (%s, %s, %s, %s)
                    ON CONFLICT (id) DO UPDATE SET payload = EXCLUDED.payload, updated_at = EXCLUDED.updated_at
                    """,
                    (consultation.id, Json(payload), now, now)
                )
                # Keep the serial sequence ahead of explicitly stored ids
                cursor.execute(
                    f"SELECT setval(pg_get_serial_sequence('{TABLE_NAME}', 'id'), "
                    f"GREATEST((SELECT MAX(id) FROM {TABLE_NAME}), 1))"
                )
                consultation_id = consultation.id

            conn.commit()
            return Result.success_result(ConsultationDTO.from_storage(int(consultation_id), payload))

        except Exception as e:
            return self._failure(conn, "save", e, {"id": consultation.id})
        finally:
            if conn is not None:
                self._return_connection(conn)

    @staticmethod
    def _to_dto(row: tuple) -> ConsultationDTO:
        consultation_id, payload = row
        return ConsultationDTO.from_storage(int(consultation_id), payload or {})

    def find_all(self, pageable: Pageable) -> Result[Page[ConsultationDTO]]:
        """Get one page of consultations (numbers sort by value, other properties as text)."""
        init_result = self.initialize_schema()
        if not init_result.is_success():
            return init_result

        order_by = build_order_by(
            pageable,
            id_column="id",
            json_expression=lambda prop: f"payload ->> '{prop}'",
            numeric_expression=lambda prop: (
                f"CASE WHEN jsonb_typeof(payload -> '{prop}') = 'number' "
                f"THEN (payload ->> '{prop}')::numeric END"
            )
        )

        conn = None
        try:
            conn = self._get_connection()
            cursor = conn.cursor()
            cursor.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}")
            total = cursor.fetchone()[0]
            cursor.execute(
                f"SELECT id, payload FROM {TABLE_NAME} {order_by} LIMIT %s OFFSET %s",
                (pageable.size, pageable.offset)
            )
            rows = cursor.fetchall()
            conn.commit()

            return Result.success_result(
                Page(content=[self._to_dto(row) for row in rows], total_elements=int(total), pageable=pageable)
            )

        except Exception as e:
            return self._failure(conn, "find_all", e)
        finally:
            if conn is not None:
                self._return_connection(conn)

    def find_all_unpaged(self) -> Iterator[ConsultationDTO]:
        """Stream every consultation ordered by id, in batches."""
        init_result = self.initialize_schema()
        if not init_result.is_success():
            raise StorageError(init_result.error, operation="find_all_unpaged")

        last_id = 0
        while True:
            conn = self._get_connection()
            try:
                cursor = conn.cursor()
                cursor.execute(
                    f"SELECT id, payload FROM {TABLE_NAME} WHERE id > %s ORDER BY id ASC LIMIT %s",
                    (last_id, STREAM_BATCH_SIZE)
                )
                rows = cursor.fetchall()
                conn.commit()
            finally:
                self._return_connection(conn)

            if not rows:
                return

            for row in rows:
                yield self._to_dto(row)
            last_id = int(rows[-1][0])

    def find_by_id(self, consultation_id: int) -> Result[Optional[ConsultationDTO]]:
        init_result = self.initialize_schema()
        if not init_result.is_success():
            return init_result

        conn = None
        try:
            conn = self._get_connection()
            cursor = conn.cursor()
            cursor.execute(f"SELECT id, payload FROM {TABLE_NAME} WHERE id = %s", (consultation_id,))
            row = cursor.fetchone()
            conn.commit()
            return Result.success_result(self._to_dto(row) if row else None)

        except Exception as e:
            return self._failure(conn, "find_by_id", e, {"id": consultation_id})
        finally:
            if conn is not None:
                self._return_connection(conn)

    def delete_by_id(self, consultation_id: int) -> Result[None]:
        init_result = self.initialize_schema()
        if not init_result.is_success():
            return init_result

        conn = None
        try:
            conn = self._get_connection()
            cursor = conn.cursor()
            cursor.execute(f"DELETE FROM {TABLE_NAME} WHERE id = %s", (consultation_id,))
            conn.commit()
            return Result.success_result(None)

        except Exception as e:
            return self._failure(conn, "delete_by_id", e, {"id": consultation_id})
        finally:
            if conn is not None:
                self._return_connection(conn)

    def count(self) -> Result[int]:
        init_result = self.initialize_schema()
        if not init_result.is_success():
            return init_result

        conn = None
        try:
            conn = self._get_connection()
            cursor = conn.cursor()
            cursor.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}")
            total = cursor.fetchone()[0]
            conn.commit()
            return Result.success_result(int(total))

        except Exception as e:
            return self._failure(conn, "count", e)
        finally:
            if conn is not None:
                self._return_connection(conn)

    def query(self, sql: str) -> Result[list]:
        """Run a raw statement and return all rows."""
        conn = None
        try:
            conn = self._get_connection()
            cursor = conn.cursor()
            cursor.execute(sql)
            rows = cursor.fetchall()
            conn.commit()
            return Result.success_result(rows)

        except Exception as e:
            return self._failure(conn, "query", e)
        finally:
            if conn is not None:
                self._return_connection(conn)

    def close(self) -> None:
        """Close every pooled connection."""
        if self._connection_pool is not None:
            self._connection_pool.closeall()
            self._connection_pool = None
            logger.info("PostgreSQL connection pool closed")
