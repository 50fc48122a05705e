"""SQLite database operations for pricing runs."""
import sqlite3
from pathlib import Path

from config import DB_PATH
from storage.repos.runs import RunsMixin


class Database(RunsMixin):
    def __init__(self, db_path=None):
        self.db_path = Path(db_path or DB_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self):
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_db(self):
        """Create tables and indexes if missing."""
        conn = self._get_conn()
        try:
            schema_path = Path(__file__).parent / "schema.sql"
            conn.executescript(schema_path.read_text())
        finally:
            conn.close()

    def ping(self):
        """Cheap connectivity check used by the health endpoint."""
        conn = self._get_conn()
        try:
            conn.execute("SELECT 1").fetchone()
        finally:
            conn.close()
