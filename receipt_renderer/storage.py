import json
import logging
import sqlite3
from datetime import datetime

from .config import settings

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Small persistent key-value store on top of sqlite.

    Values are stored as JSON text. Each call opens its own connection, so one
    store can be shared by Flask worker threads.
    """

    def __init__(self, db_path=None):
        self.db_path = db_path or settings.DB_PATH
        self.init_db()

    def _connect(self):
        return sqlite3.connect(self.db_path)

    def init_db(self):
        conn = self._connect()
        try:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            ''')
            conn.commit()
        finally:
            conn.close()

    def set(self, key, value):
        conn = self._connect()
        try:
            conn.execute(
                'INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)',
                (key, json.dumps(value), datetime.now().isoformat())
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug(f"Stored value for key '{key}'")

    def get(self, key, default=None):
        conn = self._connect()
        try:
            row = conn.execute('SELECT value FROM kv_store WHERE key = ?', (key,)).fetchone()
        finally:
            conn.close()
        return json.loads(row[0]) if row else default
