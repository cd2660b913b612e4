"""SQLite persistence for pool documents.

One row per (season, pool) holding the JSON document and its version.
"""

import datetime
import json
import os
import sqlite3

from .errors import StaleDocument
from .models import PoolDocument


class PoolStore:
    def __init__(self, db_path: str):
        self.db_path = db_path
        db_dir = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(db_dir, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        cur = conn.cursor()
        cur.execute('''CREATE TABLE IF NOT EXISTS pool_documents (
            season TEXT,
            pool TEXT,
            version INTEGER,
            updated_at TEXT,
            body TEXT,
            PRIMARY KEY (season, pool)
        )''')
        conn.commit()
        conn.close()

    def load(self, season, pool: str) -> PoolDocument:
        """Return the stored document, or a fresh empty one."""
        conn = sqlite3.connect(self.db_path)
        cur = conn.cursor()
        cur.execute('''SELECT body FROM pool_documents
                       WHERE season = ? AND pool = ?''', (str(season), pool))
        row = cur.fetchone()
        conn.close()
        if row is None:
            return PoolDocument(season=str(season), pool=pool)
        return PoolDocument.from_dict(json.loads(row[0]))

    def save(self, doc: PoolDocument, expected_version: int | None = None) -> int:
        """Write a document, bumping its version.

        With ``expected_version`` the write is refused if another writer
        saved since the document was loaded.
        """
        conn = sqlite3.connect(self.db_path)
        try:
            cur = conn.cursor()
            cur.execute('BEGIN IMMEDIATE')
            cur.execute('''SELECT version FROM pool_documents
                           WHERE season = ? AND pool = ?''', (doc.season, doc.pool))
            row = cur.fetchone()
            stored = row[0] if row else 0
            if expected_version is not None and stored != expected_version:
                raise StaleDocument(
                    f'{doc.pool} {doc.season} is at version {stored}, '
                    f'expected {expected_version}')

            version = stored + 1
            updated_at = datetime.datetime.now(
                datetime.timezone.utc).isoformat(timespec='seconds')
            body = json.dumps({**doc.to_dict(), 'version': version,
                               'updated_at': updated_at}, sort_keys=True)
            cur.execute('''INSERT OR REPLACE INTO pool_documents
                (season, pool, version, updated_at, body)
                VALUES (?, ?, ?, ?, ?)''',
                (doc.season, doc.pool, version, updated_at, body))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        doc.version = version
        doc.updated_at = updated_at
        return version

    def delete(self, season, pool: str) -> bool:
        conn = sqlite3.connect(self.db_path)
        cur = conn.cursor()
        cur.execute('''DELETE FROM pool_documents
                       WHERE season = ? AND pool = ?''', (str(season), pool))
        deleted = cur.rowcount > 0
        conn.commit()
        conn.close()
        return deleted
