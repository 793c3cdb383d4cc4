from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict

from sqlalchemy.engine import URL


# --- Abstract Strategy ---
class DatabaseConnectionStrategy(ABC):
    """Abstract base class for a database connection strategy."""

    @abstractmethod
    def get_uri(self) -> str:
        """Constructs the SQLAlchemy database URI."""
        pass

    def get_engine_options(self) -> Dict[str, Any]:
        """Extra keyword arguments for create_engine."""
        return {}


# --- Concrete Strategies ---
@dataclass
class PostgresConnectionStrategy(DatabaseConnectionStrategy):
    """Strategy for connecting to a PostgreSQL database."""
    host: str
    port: int
    user: str
    password: str
    dbname: str

    def get_uri(self) -> str:
        # Assumes psycopg2 driver
        return URL.create(
            "postgresql+psycopg2",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.dbname,
        ).render_as_string(hide_password=False)

    def get_engine_options(self) -> Dict[str, Any]:
        return {"pool_pre_ping": True}


@dataclass
class SqliteConnectionStrategy(DatabaseConnectionStrategy):
    """Strategy for connecting to a SQLite database."""
    db_path: str

    def get_uri(self) -> str:
        return f"sqlite:///{self.db_path}"

    def get_engine_options(self) -> Dict[str, Any]:
        # Calls are dispatched to worker threads via asyncio.to_thread.
        return {"connect_args": {"check_same_thread": False}}
