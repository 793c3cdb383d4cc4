from __future__ import annotations
import logging
from omegaconf import DictConfig, OmegaConf
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from .schema import metadata
from .strategy import DatabaseConnectionStrategy, PostgresConnectionStrategy, SqliteConnectionStrategy

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Manages database connections via a strategy.
    """
    def __init__(self, db_config: DictConfig):
        """
        Initializes the DatabaseManager with the correct strategy
        based on the provided configuration.
        """
        db_type = db_config.get("type")
        if not db_type:
            raise ValueError("Database 'type' must be specified in the configuration.")

        strategy: DatabaseConnectionStrategy
        params = db_config.get("params", {})
        if isinstance(params, DictConfig):
            params = OmegaConf.to_container(params, resolve=True)

        if db_type == "postgres":
            strategy = PostgresConnectionStrategy(**params)
        elif db_type == "sqlite":
            strategy = SqliteConnectionStrategy(**params)
        else:
            raise NotImplementedError(f"Database type '{db_type}' is not supported.")

        self._strategy = strategy
        self._engine = create_engine(self._strategy.get_uri(), **self._strategy.get_engine_options())

    def get_engine(self) -> Engine:
        """Returns the SQLAlchemy engine instance."""
        return self._engine

    def get_uri(self) -> str:
        """Returns the database connection URI."""
        return self._strategy.get_uri()

    def create_tables(self) -> None:
        """Creates any missing tables. Intended for local development databases."""
        metadata.create_all(self._engine)
        logger.info("Ensured StoryMine tables exist.")

    def dispose(self) -> None:
        self._engine.dispose()
