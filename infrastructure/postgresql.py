# ============================================================================
# POSTGRESQL REPOSITORIES
# ============================================================================
# STATUS: Infrastructure - PostgreSQL job store (service mode)
# PURPOSE: Job lifecycle rows and project data with direct psycopg3 access
# EXPORTS: PostgreSQLRepository, PostgreSQLJobRepository, PostgreSQLGeoDataRepository
# INTERFACES: IJobRepository, IGeoDataRepository
# DEPENDENCIES: psycopg, psycopg.sql, config
# SCOPE: app schema tables: jobs, organizations, projects, project_datasets,
#        geo_features, ndvi_results, reports
# VALIDATION: SQL injection prevention via psycopg.sql composition
# ============================================================================

"""
PostgreSQL Repository Implementation - Direct Database Access

Architecture:
    PostgreSQLRepository (connection + query execution)
        ↓
    PostgreSQLJobRepository, PostgreSQLGeoDataRepository

Each operation opens its own connection, so repositories are safe to call
from the worker pool's executor threads. Lifecycle writes are single-row
UPDATEs whose WHERE clause carries the status guard; the returned rowcount
tells the caller whether the transition was applied.
"""

import json
import uuid
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from config import AppConfig, get_config
from core.logic.transitions import get_job_update_sources
from core.models.enums import JobStatus
from core.models.job import JobRecord
from exceptions import DatabaseError
from interfaces.repository import IGeoDataRepository, IJobRepository
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "PostgreSQLRepository")


def _json_or_none(value: Any) -> Optional[str]:
    return json.dumps(value, default=str) if value is not None else None


def _as_dict(value: Any) -> Optional[Dict[str, Any]]:
    """JSONB columns come back as dicts; TEXT columns as strings."""
    if value is None or isinstance(value, dict):
        return value
    return json.loads(value)


# ============================================================================
# POSTGRESQL BASE REPOSITORY - Connection and common operations
# ============================================================================

class PostgreSQLRepository:
    """
    PostgreSQL base class with connection management.

    Configuration priority:
    1. Explicit parameters (connection_string, schema_name)
    2. Provided AppConfig object
    3. Global configuration from get_config()
    """

    def __init__(self, connection_string: Optional[str] = None,
                 schema_name: Optional[str] = None,
                 config: Optional[AppConfig] = None):
        config = config or get_config()
        self.conn_string = connection_string or config.database.connection_string
        self.schema_name = schema_name or config.database.schema_name
        logger.debug(f"🐘 PostgreSQL repository ready (schema={self.schema_name})")

    @contextmanager
    def _get_connection(self):
        """
        Context manager for PostgreSQL connections.

        Rolls back on error and always closes the connection.

        Raises:
            DatabaseError: On connection failures
        """
        conn = None
        try:
            conn = psycopg.connect(self.conn_string, row_factory=dict_row)
        except psycopg.Error as e:
            logger.error(f"❌ PostgreSQL connection error: {type(e).__name__}: {e}")
            raise DatabaseError(f"Database connection failed: {e}") from e

        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _table(self, name: str) -> sql.Composed:
        return sql.SQL("{}.{}").format(sql.Identifier(self.schema_name), sql.Identifier(name))

    def _execute_query(self, query: sql.Composed, params: Optional[Tuple] = None,
                       fetch: Optional[str] = None) -> Any:
        """
        Execute a query and ALWAYS commit.

        Args:
            query: Query built with psycopg.sql composition
            params: Values for %s placeholders
            fetch: None | 'one' | 'all'

        Returns:
            Fetched row(s) for fetch operations, otherwise the affected rowcount

        Raises:
            TypeError: If query is not sql.Composed
            DatabaseError: For any database operation failure
        """
        if not isinstance(query, sql.Composed):
            raise TypeError(f"❌ SECURITY: Query must be sql.Composed, got {type(query)}")
        if fetch not in (None, 'one', 'all'):
            raise ValueError(f"❌ INVALID FETCH MODE: {fetch}")

        with self._get_connection() as conn:
            try:
                with conn.cursor() as cursor:
                    cursor.execute(query, params)
                    if fetch == 'one':
                        result = cursor.fetchone()
                    elif fetch == 'all':
                        result = cursor.fetchall()
                    else:
                        result = cursor.rowcount
                conn.commit()
                return result
            except psycopg.Error as e:
                logger.error(f"❌ QUERY FAILED: {e}")
                logger.error(f"   SQL State: {getattr(e, 'sqlstate', 'unknown')}")
                raise DatabaseError(f"Query execution failed: {e}") from e


# ============================================================================
# JOB REPOSITORY
# ============================================================================

class PostgreSQLJobRepository(PostgreSQLRepository, IJobRepository):
    """
    Job lifecycle rows.

    The worker pool is the only writer of status; producers only insert.
    """

    _COLUMNS = (
        "id", "job_type", "parameters", "status", "session_id", "project_id",
        "organization_id", "user_id", "result_data", "error_message",
        "created_at", "started_at", "completed_at",
    )

    def create_job(self, job: JobRecord) -> bool:
        query = sql.SQL("""
            INSERT INTO {} ({})
            VALUES ({})
            ON CONFLICT (id) DO NOTHING
        """).format(
            self._table("jobs"),
            sql.SQL(", ").join(sql.Identifier(c) for c in self._COLUMNS),
            sql.SQL(", ").join(sql.Placeholder() for _ in self._COLUMNS),
        )
        params = (
            job.id, job.job_type, json.dumps(job.parameters, default=str), job.status.value,
            job.session_id, job.project_id, job.organization_id, job.user_id,
            _json_or_none(job.result_data), job.error_message,
            job.created_at, job.started_at, job.completed_at,
        )
        created = self._execute_query(query, params) > 0
        if created:
            logger.info(f"✅ Job created: {job.id} type={job.job_type}")
        else:
            logger.info(f"📋 Job already exists: {job.id} (idempotent)")
        return created

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        query = sql.SQL("SELECT {} FROM {} WHERE id = %s").format(
            sql.SQL(", ").join(sql.Identifier(c) for c in self._COLUMNS),
            self._table("jobs"),
        )
        row = self._execute_query(query, (job_id,), fetch='one')
        if not row:
            logger.debug(f"📋 Job not found: {job_id}")
            return None
        row = dict(row)
        row["id"] = str(row["id"])
        row["parameters"] = _as_dict(row["parameters"]) or {}
        row["result_data"] = _as_dict(row["result_data"])
        return JobRecord(**row)

    def _guarded_update(self, job_id: str, target: JobStatus,
                        assignments: sql.Composable, params: Tuple) -> bool:
        sources = [s.value for s in get_job_update_sources(target)]
        query = sql.SQL("""
            UPDATE {}
            SET status = %s, {}
            WHERE id = %s AND status = ANY(%s)
        """).format(self._table("jobs"), assignments)
        updated = self._execute_query(query, (target.value, *params, job_id, sources)) > 0
        if not updated:
            logger.warning(f"⚠️ {target.value} write not applied for job {job_id} (status guard)")
        return updated

    def mark_running(self, job_id: str) -> bool:
        return self._guarded_update(
            job_id, JobStatus.RUNNING, sql.SQL("started_at = now()"), (),
        )

    def mark_completed(self, job_id: str, result: Dict[str, Any]) -> bool:
        return self._guarded_update(
            job_id, JobStatus.COMPLETED,
            sql.SQL("result_data = %s, error_message = NULL, completed_at = now()"),
            (json.dumps(result, default=str),),
        )

    def mark_failed(self, job_id: str, error_message: str) -> bool:
        return self._guarded_update(
            job_id, JobStatus.FAILED,
            sql.SQL("error_message = %s, result_data = NULL, completed_at = now()"),
            (error_message,),
        )


# ============================================================================
# GEO DATA REPOSITORY
# ============================================================================

class PostgreSQLGeoDataRepository(PostgreSQLRepository, IGeoDataRepository):
    """
    Project data read by processors and the records they derive.
    """

    def resolve_dataset_url(self, dataset_id: str) -> Optional[str]:
        query = sql.SQL("SELECT file_path FROM {} WHERE id = %s").format(
            self._table("project_datasets")
        )
        row = self._execute_query(query, (dataset_id,), fetch='one')
        return row["file_path"] if row else None

    def get_project(self, project_id: str, organization_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        query = sql.SQL("""
            SELECT p.id, p.title, p.description, p.organization_id,
                   p.created_at, p.updated_at, o.name AS organization_name
            FROM {} p
            LEFT JOIN {} o ON o.id = p.organization_id
            WHERE p.id = %s
        """).format(self._table("projects"), self._table("organizations"))
        params: Tuple = (project_id,)
        if organization_id is not None:
            query = query + sql.SQL(" AND p.organization_id = %s")
            params = (project_id, organization_id)
        row = self._execute_query(query, params, fetch='one')
        return dict(row) if row else None

    def list_project_datasets(self, project_id: str) -> List[Dict[str, Any]]:
        query = sql.SQL("""
            SELECT id, project_id, name, file_path, file_size, data_type, created_at
            FROM {} WHERE project_id = %s
            ORDER BY created_at DESC
        """).format(self._table("project_datasets"))
        return [dict(r) for r in self._execute_query(query, (project_id,), fetch='all')]

    def list_project_jobs(
        self,
        project_id: str,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        conditions = [sql.SQL("project_id = %s")]
        params: List[Any] = [project_id]
        if status is not None:
            conditions.append(sql.SQL("status = %s"))
            params.append(status)
        query = sql.SQL("""
            SELECT id, job_type, status, created_at, started_at, completed_at,
                   result_data, error_message
            FROM {} WHERE {}
            ORDER BY created_at DESC
        """).format(self._table("jobs"), sql.SQL(" AND ").join(conditions))
        if limit is not None:
            query = query + sql.SQL(" LIMIT %s")
            params.append(limit)
        rows = []
        for row in self._execute_query(query, tuple(params), fetch='all'):
            row = dict(row)
            row["result_data"] = _as_dict(row["result_data"])
            rows.append(row)
        return rows

    def list_ndvi_results(self, project_id: str) -> List[Dict[str, Any]]:
        query = sql.SQL("""
            SELECT id, job_id, organization_id, project_id, raster_data_url,
                   statistics, metadata, created_at
            FROM {} WHERE project_id = %s
            ORDER BY created_at DESC
        """).format(self._table("ndvi_results"))
        rows = []
        for row in self._execute_query(query, (project_id,), fetch='all'):
            row = dict(row)
            row["statistics"] = _as_dict(row["statistics"])
            row["metadata"] = _as_dict(row["metadata"])
            rows.append(row)
        return rows

    def list_geo_features(self, project_id: str) -> List[Dict[str, Any]]:
        query = sql.SQL("""
            SELECT id, name, feature_type, geometry, properties, session_id, project_id, created_at
            FROM {} WHERE project_id = %s
        """).format(self._table("geo_features"))
        rows = []
        for row in self._execute_query(query, (project_id,), fetch='all'):
            row = dict(row)
            row["geometry"] = _as_dict(row["geometry"])
            row["properties"] = _as_dict(row["properties"])
            rows.append(row)
        return rows

    def _insert(self, table: str, record: Dict[str, Any], json_columns: Tuple[str, ...]) -> str:
        record_id = str(uuid.uuid4())
        columns = ["id", *record.keys()]
        values = [record_id] + [
            _json_or_none(v) if k in json_columns else v for k, v in record.items()
        ]
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
            self._table(table),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            sql.SQL(", ").join(sql.Placeholder() for _ in columns),
        )
        self._execute_query(query, tuple(values))
        logger.debug(f"✅ Inserted {table} row {record_id}")
        return record_id

    def insert_geo_feature(self, feature: Dict[str, Any]) -> str:
        return self._insert("geo_features", feature, ("geometry", "properties"))

    def insert_ndvi_result(self, record: Dict[str, Any]) -> str:
        return self._insert("ndvi_results", record, ("statistics", "metadata"))

    def insert_report(self, record: Dict[str, Any]) -> str:
        return self._insert("reports", record, ("content",))
