"""SQLite endpoint store for Makamesco.

Holds the flat catalog of scraped upstream endpoints behind an async
interface. Every scrape clears the table and repopulates it.
"""

import sqlite3
import logging
from typing import List, Optional
from datetime import datetime, timezone
from pathlib import Path

from .models import EndpointRecord, EndpointRecordInput

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

_COLUMNS = "id, category, name, return_type, description, parameters, link, created_at"


class StoreError(Exception):
    """Raised when a store operation fails."""


def _casefold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if value is not None else None


class EndpointStore:
    """SQLite-backed endpoint store."""
    
    def __init__(self, db_path: str):
        self.db_path = db_path
        self.conn: Optional[sqlite3.Connection] = None
        
    async def initialize(self):
        """Open the SQLite connection and ensure the schema exists."""
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            # SQLite LIKE and lower() only fold ASCII
            self.conn.create_function("casefold", 1, _casefold, deterministic=True)
            
            with open(SCHEMA_PATH, 'r', encoding='utf-8') as f:
                schema_sql = f.read()
            self.conn.executescript(schema_sql)
            self.conn.commit()
            
            logger.info(f"Endpoint store initialized: {self.db_path}")
            
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize SQLite: {e}")
            raise StoreError(f"Failed to initialize store: {e}") from e
    
    async def close(self):
        """Close SQLite connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("SQLite connection closed")
    
    def _connection(self) -> sqlite3.Connection:
        if self.conn is None:
            raise StoreError("Endpoint store not initialized. Call initialize() first.")
        return self.conn
    
    @staticmethod
    def _to_record(row: sqlite3.Row) -> EndpointRecord:
        return EndpointRecord(
            id=row['id'],
            category=row['category'],
            name=row['name'],
            return_type=row['return_type'],
            description=row['description'],
            parameters=row['parameters'],
            link=row['link'],
            scraped_at=row['created_at']
        )
    
    async def list_endpoints(self, search: Optional[str] = None,
                             category: Optional[str] = None) -> List[EndpointRecord]:
        """List endpoints, optionally filtered.
        
        Args:
            search: case-insensitive substring matched against the name
            category: exact category match
        
        Both filters are ANDed. Results come back in insertion order.
        """
        conditions = []
        params = []
        
        if search:
            conditions.append("instr(casefold(name), ?) > 0")
            params.append(search.casefold())
        
        if category:
            conditions.append("category = ?")
            params.append(category)
        
        where_clause = ""
        if conditions:
            where_clause = "WHERE " + " AND ".join(conditions)
        
        try:
            cursor = self._connection().execute(
                f"SELECT {_COLUMNS} FROM endpoints {where_clause} ORDER BY id",
                params
            )
            return [self._to_record(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to list endpoints: {e}") from e
    
    async def insert_endpoint(self, endpoint: EndpointRecordInput) -> EndpointRecord:
        """Insert an endpoint and return the stored record."""
        scraped_at = datetime.now(timezone.utc)
        conn = self._connection()
        
        try:
            cursor = conn.execute(
                """
                INSERT INTO endpoints (category, name, return_type, description, parameters, link, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (endpoint.category, endpoint.name, endpoint.return_type,
                 endpoint.description, endpoint.parameters, endpoint.link,
                 scraped_at.isoformat())
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to insert endpoint {endpoint.name!r}: {e}") from e
        
        return EndpointRecord(
            id=cursor.lastrowid,
            scraped_at=scraped_at,
            **endpoint.model_dump()
        )
    
    async def clear_endpoints(self):
        """Delete every stored endpoint."""
        conn = self._connection()
        try:
            cursor = conn.execute("DELETE FROM endpoints")
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to clear endpoints: {e}") from e
        logger.debug(f"Cleared {cursor.rowcount} endpoints")
    
    async def count_endpoints(self) -> int:
        """Total number of stored endpoints."""
        try:
            cursor = self._connection().execute("SELECT COUNT(*) FROM endpoints")
            return cursor.fetchone()[0]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to count endpoints: {e}") from e
