"""
SQLite Template Store Module.

This module provides a SQLite implementation of the template store.
Zones and patterns are stored as JSON columns.

Features:
    - Automatic schema creation
    - One template per (owner, normalized supplier name)
    - Document zone snapshots keyed by document id

Blocking sqlite3 calls run in a worker thread so the store exposes the
same coroutine interface as every other backend. A connection is opened
per operation.
"""

import asyncio
import json
import sqlite3
from pathlib import Path
from typing import Dict, List, Optional, Any

from config import get_config
from src.schema import FieldName
from src.utils.exceptions import StorageError
from src.utils.helpers import ensure_directory, format_timestamp, utc_now
from src.utils.logger import get_logger
from .models import DetectedZone, DocumentCorrection, SupplierTemplate, zones_to_dict
from .store import TemplateStore

logger = get_logger(__name__)


class SQLiteTemplateStore(TemplateStore):
    """
    Template store backed by a SQLite database file.

    Attributes:
        db_path: Path to the SQLite database file
        templates_table: Name of the template table
        documents_table: Name of the document snapshot table

    Example:
        >>> store = SQLiteTemplateStore("outputs/templates.db")
        >>> templates = await store.list_templates("acc-1")
    """

    def __init__(self, db_path: Optional[str] = None) -> None:
        if db_path:
            self.db_path = Path(db_path)
        else:
            output_dir = Path(get_config("paths.output_dir", "outputs"))
            db_name = get_config("storage.database.name", "templates.db")
            self.db_path = output_dir / db_name

        self.templates_table = get_config(
            "storage.database.templates_table", "supplier_templates"
        )
        self.documents_table = get_config(
            "storage.database.documents_table", "document_zones"
        )

        ensure_directory(self.db_path.parent)
        self._create_tables()

        logger.info(f"SQLiteTemplateStore initialized (db: {self.db_path})")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _create_tables(self) -> None:
        """Create the required database tables."""
        templates_sql = f"""
        CREATE TABLE IF NOT EXISTS {self.templates_table} (
            id TEXT PRIMARY KEY,
            owner TEXT NOT NULL,
            supplier_name TEXT NOT NULL,
            supplier_name_normalized TEXT NOT NULL,
            supplier_tax_id TEXT,
            field_zones TEXT NOT NULL,
            identification_patterns TEXT NOT NULL,
            times_used INTEGER NOT NULL DEFAULT 0,
            success_rate REAL NOT NULL DEFAULT 100,
            last_used_at TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE(owner, supplier_name_normalized)
        )
        """

        documents_sql = f"""
        CREATE TABLE IF NOT EXISTS {self.documents_table} (
            document_id TEXT PRIMARY KEY,
            owner TEXT,
            template_id TEXT,
            field_values TEXT NOT NULL,
            normalized_values TEXT NOT NULL,
            detected_zones TEXT NOT NULL,
            zones_validated INTEGER NOT NULL DEFAULT 1,
            updated_at TEXT NOT NULL
        )
        """

        try:
            conn = self._connect()
            try:
                cursor = conn.cursor()
                cursor.execute(templates_sql)
                cursor.execute(documents_sql)
                cursor.execute(f"""
                    CREATE INDEX IF NOT EXISTS idx_{self.templates_table}_owner
                    ON {self.templates_table} (owner)
                """)
                conn.commit()
            finally:
                conn.close()

            logger.debug("Database tables created/verified")

        except sqlite3.Error as e:
            raise StorageError("create tables", str(e))

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    @staticmethod
    def _template_from_row(row: sqlite3.Row) -> SupplierTemplate:
        return SupplierTemplate.from_dict({
            'id': row['id'],
            'owner': row['owner'],
            'supplier_name': row['supplier_name'],
            'supplier_tax_id': row['supplier_tax_id'],
            'field_zones': json.loads(row['field_zones']),
            'identification_patterns': json.loads(row['identification_patterns']),
            'times_used': row['times_used'],
            'success_rate': row['success_rate'],
            'last_used_at': row['last_used_at'],
            'created_at': row['created_at'],
            'updated_at': row['updated_at'],
        })

    @staticmethod
    def _document_from_row(row: sqlite3.Row) -> DocumentCorrection:
        return DocumentCorrection.from_dict({
            'document_id': row['document_id'],
            'owner': row['owner'],
            'template_id': row['template_id'],
            'values': json.loads(row['field_values']),
            'normalized_values': json.loads(row['normalized_values']),
            'detected_zones': json.loads(row['detected_zones']),
            'zones_validated': bool(row['zones_validated']),
            'updated_at': row['updated_at'],
        })

    # ------------------------------------------------------------------
    # Blocking operations
    # ------------------------------------------------------------------

    def _fetch(self, operation: str, query: str, params: tuple) -> List[sqlite3.Row]:
        try:
            conn = self._connect()
            try:
                return conn.execute(query, params).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(operation, str(e))

    def _execute(self, operation: str, query: str, params: tuple) -> int:
        try:
            conn = self._connect()
            try:
                cursor = conn.execute(query, params)
                conn.commit()
                return cursor.rowcount
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(operation, str(e))

    def _list_templates(self, owner: str) -> List[SupplierTemplate]:
        rows = self._fetch(
            "list_templates",
            f"SELECT * FROM {self.templates_table} WHERE owner = ? "
            f"ORDER BY times_used DESC, supplier_name_normalized",
            (owner,)
        )
        return [self._template_from_row(row) for row in rows]

    def _get_template(self, template_id: str) -> Optional[SupplierTemplate]:
        rows = self._fetch(
            "get_template",
            f"SELECT * FROM {self.templates_table} WHERE id = ? LIMIT 1",
            (template_id,)
        )
        return self._template_from_row(rows[0]) if rows else None

    def _upsert_template(self, template: SupplierTemplate) -> SupplierTemplate:
        data = template.to_dict()
        # OR REPLACE also evicts another id holding the same (owner, name)
        self._execute(
            "upsert_template",
            f"""
            INSERT OR REPLACE INTO {self.templates_table} (
                id, owner, supplier_name, supplier_name_normalized,
                supplier_tax_id, field_zones, identification_patterns,
                times_used, success_rate, last_used_at, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                data['id'],
                data['owner'],
                data['supplier_name'],
                data['supplier_name_normalized'],
                data['supplier_tax_id'],
                json.dumps(data['field_zones'], ensure_ascii=False),
                json.dumps(data['identification_patterns'], ensure_ascii=False),
                data['times_used'],
                data['success_rate'],
                data['last_used_at'],
                data['created_at'],
                data['updated_at'],
            )
        )
        logger.debug(f"Stored template {template.id} ({template.supplier_name})")
        return self._get_template(template.id)

    def _delete_template(self, template_id: str) -> bool:
        deleted = self._execute(
            "delete_template",
            f"DELETE FROM {self.templates_table} WHERE id = ?",
            (template_id,)
        )
        return deleted > 0

    def _attach(self, record: Dict[str, Any]) -> DocumentCorrection:
        self._execute(
            "attach_zones_to_document",
            f"""
            INSERT OR REPLACE INTO {self.documents_table} (
                document_id, owner, template_id, field_values,
                normalized_values, detected_zones, zones_validated, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record['document_id'],
                record['owner'],
                record['template_id'],
                json.dumps(record['values'], ensure_ascii=False),
                json.dumps(record['normalized_values'], ensure_ascii=False),
                json.dumps(record['detected_zones'], ensure_ascii=False),
                1,
                record['updated_at'],
            )
        )
        return self._get_document(record['document_id'])

    def _get_document(self, document_id: str) -> Optional[DocumentCorrection]:
        rows = self._fetch(
            "get_document",
            f"SELECT * FROM {self.documents_table} WHERE document_id = ? LIMIT 1",
            (document_id,)
        )
        return self._document_from_row(rows[0]) if rows else None

    # ------------------------------------------------------------------
    # TemplateStore interface
    # ------------------------------------------------------------------

    async def list_templates(self, owner: str) -> List[SupplierTemplate]:
        return await asyncio.to_thread(self._list_templates, owner)

    async def get_template(self, template_id: str) -> Optional[SupplierTemplate]:
        return await asyncio.to_thread(self._get_template, template_id)

    async def upsert_template(self, template: SupplierTemplate) -> SupplierTemplate:
        return await asyncio.to_thread(self._upsert_template, template)

    async def delete_template(self, template_id: str) -> bool:
        return await asyncio.to_thread(self._delete_template, template_id)

    async def attach_zones_to_document(
        self,
        document_id: str,
        zones: Dict[FieldName, DetectedZone],
        values: Optional[Dict[FieldName, Optional[str]]] = None,
        normalized_values: Optional[Dict[FieldName, Optional[str]]] = None,
        owner: str = "",
        template_id: Optional[str] = None,
    ) -> DocumentCorrection:
        record = {
            'document_id': document_id,
            'owner': owner,
            'template_id': template_id,
            'values': {k.value: v for k, v in (values or {}).items()},
            'normalized_values': {k.value: v for k, v in (normalized_values or {}).items()},
            'detected_zones': zones_to_dict(zones),
            'updated_at': format_timestamp(utc_now()),
        }
        return await asyncio.to_thread(self._attach, record)

    async def get_document(self, document_id: str) -> Optional[DocumentCorrection]:
        return await asyncio.to_thread(self._get_document, document_id)
