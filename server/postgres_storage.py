"""PostgreSQL quiz storage: one JSONB document per session plus an event log."""

import json
import logging
import os
import threading
from contextlib import contextmanager

from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from core.errors import InvalidSessionOperation
from core.interfaces import QuizStore

logger = logging.getLogger(__name__)


class PostgresStorage(QuizStore):
    """Stores quiz documents in PostgreSQL with a version-guarded upsert.

    Every operation checks out its own pooled connection and commits or rolls
    back only that connection, so concurrent requests never share a transaction.
    """

    def __init__(self, config_file: str = None, db_url: str = None,
                 min_connections: int = 1, max_connections: int = 10):
        self.config_file = config_file or os.path.expanduser('~/.config/wordsnap/config.json')
        self.db_url = db_url or os.environ.get(
            'DATABASE_URL',
            'postgresql://localhost:5432/wordsnap'
        )
        self.min_connections = min_connections
        self.max_connections = max_connections
        self._pool = None
        self._pool_lock = threading.Lock()

    @property
    def pool(self) -> ThreadedConnectionPool:
        """Create the pool and the schema on first use."""
        with self._pool_lock:
            if self._pool is None:
                pool = ThreadedConnectionPool(self.min_connections, self.max_connections, self.db_url)
                conn = pool.getconn()
                try:
                    self._init_db(conn)
                finally:
                    pool.putconn(conn)
                self._pool = pool
            return self._pool

    @contextmanager
    def _transaction(self):
        """Yield a pooled connection; commit on success, roll back on error."""
        pool = self.pool
        conn = pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    def _init_db(self, conn):
        """Create tables if they don't exist."""
        with conn.cursor() as cur:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS quizzes (
                    session_id VARCHAR(64) PRIMARY KEY,
                    owner_id VARCHAR(255) NOT NULL,
                    status VARCHAR(16) NOT NULL,
                    version INTEGER NOT NULL,
                    document JSONB NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_quizzes_owner
                ON quizzes(owner_id, created_at)
            """)
            # Events log table
            cur.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    id SERIAL PRIMARY KEY,
                    timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    event VARCHAR(50) NOT NULL,
                    owner_id VARCHAR(255) NOT NULL,
                    session_id VARCHAR(64),
                    data JSONB
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_events_owner_id ON events(owner_id)
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_events_session ON events(session_id)
            """)
        conn.commit()

    def close(self):
        """Close all pooled connections."""
        with self._pool_lock:
            if self._pool is not None:
                self._pool.closeall()
                self._pool = None

    def load_config(self) -> dict:
        if not os.path.exists(self.config_file):
            raise FileNotFoundError(
                f"Config file not found at {self.config_file}\n"
                f'Please create it with: {{"gemini_api_key": "YOUR_API_KEY_HERE"}}'
            )
        with open(self.config_file, 'r') as f:
            return json.load(f)

    def load_quiz(self, session_id: str) -> dict | None:
        with self._transaction() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    "SELECT document FROM quizzes WHERE session_id = %s",
                    (session_id,)
                )
                row = cur.fetchone()
        return row['document'] if row else None

    def save_quiz(self, quiz: dict) -> None:
        try:
            with self._transaction() as conn:
                with conn.cursor() as cur:
                    # Only replace rows holding an older version of the document
                    cur.execute("""
                        INSERT INTO quizzes (session_id, owner_id, status, version, document, updated_at)
                        VALUES (%s, %s, %s, %s, %s, CURRENT_TIMESTAMP)
                        ON CONFLICT (session_id)
                        DO UPDATE SET status = EXCLUDED.status,
                                      version = EXCLUDED.version,
                                      document = EXCLUDED.document,
                                      updated_at = CURRENT_TIMESTAMP
                        WHERE quizzes.version < EXCLUDED.version
                    """, (quiz['session_id'], quiz['owner_id'], quiz['status'],
                          quiz['version'], json.dumps(quiz)))
                    written = cur.rowcount > 0
        except Exception as e:
            logger.error(f"Error saving quiz {quiz.get('session_id')}: {e}")
            raise
        if not written:
            raise InvalidSessionOperation(
                f"Quiz {quiz['session_id']} was modified concurrently"
            )

    def list_quizzes(self, owner_id: str) -> list[dict]:
        with self._transaction() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("""
                    SELECT document FROM quizzes
                    WHERE owner_id = %s
                    ORDER BY created_at DESC
                """, (owner_id,))
                rows = cur.fetchall()
        return [row['document'] for row in rows]

    def log_event(self, event: str, owner_id: str, session_id: str = None, **data) -> None:
        """Append an audit event. Failures are logged, not raised."""
        try:
            with self._transaction() as conn:
                with conn.cursor() as cur:
                    cur.execute("""
                        INSERT INTO events (event, owner_id, session_id, data)
                        VALUES (%s, %s, %s, %s)
                    """, (event, owner_id, session_id, json.dumps(data) if data else None))
        except Exception as e:
            logger.error(f"Error logging event {event}: {e}")
