"""MongoDB persistence for farms and their readings."""

from .connection import MongoDBConnection
from .operations import FarmRepository

__all__ = ["MongoDBConnection", "FarmRepository"]
