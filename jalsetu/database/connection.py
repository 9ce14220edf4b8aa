"""MongoDB connection management."""

import logging
from typing import Callable, Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConfigurationError, ConnectionFailure, OperationFailure, ServerSelectionTimeoutError

from ..core.config import Settings, get_settings
from ..core.exceptions import AuthenticationError, DatabaseError
from ..core.exceptions import ConfigurationError as JalSetuConfigurationError
from ..core.exceptions import TimeoutError
from ..core.retry import retry_database

logger = logging.getLogger(__name__)


class MongoDBConnection:
    """Lazily connected MongoDB client with connection pooling."""

    def __init__(self, settings: Optional[Settings] = None, client_factory: Callable[..., MongoClient] = MongoClient):
        self.settings = settings or get_settings()
        self._client_factory = client_factory
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

    @property
    def connected(self) -> bool:
        return self._database is not None

    @retry_database
    def connect(self) -> None:
        """Establish connection to MongoDB."""
        try:
            self._client = self._client_factory(
                self.settings.mongodb_uri,
                maxPoolSize=20,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=10000,
                socketTimeoutMS=20000,
            )

            self._client.admin.command("ping")
            self._database = self._client[self.settings.mongodb_database]

            logger.info(f"Connected to MongoDB database: {self.settings.mongodb_database}")

        except ServerSelectionTimeoutError as e:
            self._reset()
            raise TimeoutError(
                f"Failed to connect to MongoDB server within timeout: {e}",
                operation="connect",
            )
        except OperationFailure as e:
            self._reset()
            if e.code in (13, 18) or "auth" in str(e).lower():
                raise AuthenticationError(f"MongoDB authentication failed: {e}", service="mongodb")
            raise DatabaseError(f"MongoDB rejected the connection: {e}", operation="connect")
        except ConfigurationError as e:
            self._reset()
            raise JalSetuConfigurationError(f"MongoDB configuration error: {e}", setting="mongodb_uri")
        except ConnectionFailure:
            # Left to the retry decorator.
            self._reset()
            raise

    def _reset(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._database = None

    def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self._client is not None:
            self._reset()
            logger.info("Disconnected from MongoDB")

    def get_database(self) -> Database:
        """Get database instance, connecting on first use."""
        if self._database is None:
            self.connect()
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        return self.get_database()[collection_name]

    def validate_connection(self) -> bool:
        """Ping the server. Never raises."""
        if self._client is None:
            logger.warning("No MongoDB client available for validation")
            return False
        try:
            self._client.admin.command("ping", maxTimeMS=5000)
            return True
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection validation failed: {e}")
            return False
