import logging
from typing import Any, Dict, List, Sequence
import psycopg2
from psycopg2 import sql
from psycopg2.extras import RealDictCursor

from ..exceptions import SourceUnavailable
from ..models import ColumnDescriptor, TableRef
from .base import TableSource

logger = logging.getLogger(__name__)

STRING_TYPES = ("character varying", "character", "text", "citext")

class PostgresTableSource(TableSource):
    """
        Reads table shape and row windows from PostgreSQL.
    """
    def __init__(self, connection):
        self.conn = connection

    def columns(self, table: TableRef) -> List[ColumnDescriptor]:
        logger.info(f"Extracting searchable columns for '{table.table_id}'")

        query = """
            SELECT
                column_name,
                data_type,
                COALESCE(character_maximum_length, 0) AS max_length,
                is_nullable
            FROM information_schema.columns
            WHERE table_schema = %s
                AND table_name = %s
                AND data_type = ANY(%s)
            ORDER BY ordinal_position
        """

        rows = self._fetch_all(query, (table.schema_name, table.table_name, list(STRING_TYPES)), "columns")

        columns = []
        for row in rows:
            # text has no declared limit
            max_length = row['max_length'] or (-1 if row['data_type'] == 'text' else 0)
            columns.append(ColumnDescriptor(
                name=row['column_name'],
                data_type=row['data_type'],
                max_length=max_length,
                is_nullable=row['is_nullable'] == 'YES'
            ))

        logger.info(f"Extracted {len(columns)} searchable columns for '{table.table_id}'")
        return columns

    def key_columns(self, table: TableRef) -> List[str]:
        query = """
            SELECT kcu.column_name
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.constraint_schema = kcu.constraint_schema
            WHERE tc.table_schema = %s
                AND tc.table_name = %s
                AND tc.constraint_type = 'PRIMARY KEY'
            ORDER BY kcu.ordinal_position
        """

        rows = self._fetch_all(query, (table.schema_name, table.table_name), "key_columns")
        return [row['column_name'] for row in rows]

    def row_count(self, table: TableRef) -> int:
        query = sql.SQL("SELECT COUNT(*) AS total FROM {}").format(self._table_identifier(table))

        rows = self._fetch_all(query, None, "row_count")
        return int(rows[0]['total']) if rows else 0

    def read_window(
        self,
        table: TableRef,
        columns: Sequence[str],
        order_by: Sequence[str],
        offset: int,
        limit: int
    ) -> List[Dict[str, Any]]:
        query = sql.SQL("SELECT {columns} FROM {table}").format(
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            table=self._table_identifier(table)
        )
        if order_by:
            query += sql.SQL(" ORDER BY {}").format(
                sql.SQL(", ").join(sql.Identifier(c) for c in order_by)
            )
        query += sql.SQL(" OFFSET %s LIMIT %s")

        rows = self._fetch_all(query, (offset, limit), "read_window")
        return [dict(row) for row in rows]

    def _table_identifier(self, table: TableRef) -> sql.Composed:
        return sql.SQL("{}.{}").format(sql.Identifier(table.schema_name), sql.Identifier(table.table_name))

    def _fetch_all(self, query, params, operation: str) -> List[Dict[str, Any]]:
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(query, params)
                return cur.fetchall()
        except psycopg2.Error as e:
            if not self.conn.autocommit:
                try:
                    self.conn.rollback()
                except psycopg2.Error:
                    logger.debug("Rollback after failed query also failed")
            raise SourceUnavailable(f"{operation} failed: {e}", operation=operation) from e


def connect(settings):
    """
        Open a read-only connection to the source database.
        Statement timeout is applied per session.
    """
    try:
        conn = psycopg2.connect(
            host=settings.SOURCE_HOST,
            port=settings.SOURCE_PORT,
            database=settings.SOURCE_DATABASE,
            user=settings.SOURCE_USER,
            password=settings.SOURCE_PASSWORD,
            options=f"-c statement_timeout={settings.SOURCE_STATEMENT_TIMEOUT_SECONDS * 1000}"
        )
    except psycopg2.Error as e:
        raise SourceUnavailable(f"Could not connect to {settings.SOURCE_DATABASE}: {e}", operation="connect") from e

    conn.set_session(readonly=True, autocommit=True)
    return conn
