"""Small thread-safe pool of SQLite connections for the profile store."""
import logging
import sqlite3
import threading
from contextlib import contextmanager
from queue import Empty, Queue
from typing import Generator

logger = logging.getLogger(__name__)


class SQLiteConnectionPool:
    """Hands out at most ``max_connections`` connections to one database file.

    Connections are shared across worker threads (FastAPI runs sync handlers
    in a thread pool), so they are opened with ``check_same_thread=False`` and
    each borrow is rolled back before the connection is returned.
    """

    def __init__(self, database: str, max_connections: int = 5, busy_timeout: float = 5.0):
        if max_connections <= 0:
            raise ValueError("max_connections must be positive")
        self.database = database
        self.max_connections = max_connections
        self.busy_timeout = busy_timeout
        self._idle: Queue[sqlite3.Connection] = Queue(maxsize=max_connections)
        self._lock = threading.Lock()
        self._opened = 0

    @property
    def opened(self) -> int:
        with self._lock:
            return self._opened

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.database, timeout=self.busy_timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _acquire(self) -> sqlite3.Connection:
        try:
            return self._idle.get(block=False)
        except Empty:
            pass
        with self._lock:
            if self._opened < self.max_connections:
                self._opened += 1
                logger.debug("Opened SQLite connection %d/%d for %s", self._opened, self.max_connections, self.database)
                return self._open()
        return self._idle.get(block=True)

    def _discard(self, connection: sqlite3.Connection) -> None:
        with self._lock:
            self._opened -= 1
        try:
            connection.close()
        except sqlite3.Error:
            logger.debug("Ignoring error while closing discarded connection", exc_info=True)

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Borrow a connection; uncommitted work is rolled back on return."""
        connection = self._acquire()
        try:
            yield connection
        finally:
            try:
                connection.rollback()
                self._idle.put(connection, block=False)
            except sqlite3.Error as e:
                logger.error("Dropping broken SQLite connection: %s", e)
                self._discard(connection)

    def close_all(self) -> None:
        """Close idle connections. Borrowed ones are closed when they come back broken."""
        while True:
            try:
                connection = self._idle.get(block=False)
            except Empty:
                break
            self._discard(connection)
