"""Farm repository and database health checks."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, PyMongoError

from ..core.exceptions import DatabaseError, JalSetuError
from ..core.monitoring import DatabaseMonitor
from ..core.retry import retry_database
from .connection import MongoDBConnection

logger = logging.getLogger(__name__)

FARMS = "farms"
FIELDS = "fields"
WATER_QUALITIES = "water_qualities"
SOIL_MOISTURES = "soil_moistures"
WEATHER_PREDICTIONS = "weather_predictions"
IRRIGATION_TIPS = "irrigation_tips"
COUNTERS = "counters"

LATEST_FIRST = [("timestamp", -1), ("id", -1)]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if document is None:
        return None
    document = dict(document)
    document.pop("_id", None)
    return document


class FarmRepository:
    """Document CRUD for farms, fields and their readings.

    Every record gets an integer ``id`` from the ``counters`` collection.
    Readings carry ``farm_id`` and a UTC ``timestamp``; "latest" means the
    newest timestamp, ties broken by the higher id.
    """

    def __init__(self, database: Optional[Database] = None, connection: Optional[MongoDBConnection] = None):
        if database is None and connection is None:
            raise ValueError("FarmRepository needs a database or a connection")
        self._database = database
        self.connection = connection

    @property
    def db(self) -> Database:
        if self._database is None:
            self._database = self.connection.get_database()
        return self._database

    def _next_id(self, collection_name: str) -> int:
        counter = self.db[COUNTERS].find_one_and_update(
            {"_id": collection_name},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(counter["seq"])

    def _insert(self, collection_name: str, document: Dict[str, Any]) -> Dict[str, Any]:
        with DatabaseMonitor("insert", collection_name):
            try:
                record = {"id": self._next_id(collection_name), **document}
                self.db[collection_name].insert_one(dict(record))
            except ConnectionFailure:
                raise
            except PyMongoError as e:
                raise DatabaseError(f"Failed to insert into {collection_name}: {e}", operation="insert", collection=collection_name)
        return record

    def _find_one(self, collection_name: str, query: Dict[str, Any], sort=None) -> Optional[Dict[str, Any]]:
        with DatabaseMonitor("find_one", collection_name):
            try:
                return _clean(self.db[collection_name].find_one(query, sort=sort))
            except ConnectionFailure:
                raise
            except PyMongoError as e:
                raise DatabaseError(f"Failed to read from {collection_name}: {e}", operation="find_one", collection=collection_name)

    # Farms and fields

    @retry_database
    def create_farm(self, name: str, location: str, farmer_name: Optional[str] = None, status: str = "Your farm is thriving") -> Dict[str, Any]:
        return self._insert(FARMS, {"name": name, "location": location, "farmer_name": farmer_name, "status": status})

    @retry_database
    def get_farm(self, farm_id: int) -> Optional[Dict[str, Any]]:
        return self._find_one(FARMS, {"id": farm_id})

    @retry_database
    def update_farm_status(self, farm_id: int, status: str) -> None:
        with DatabaseMonitor("update_one", FARMS):
            try:
                self.db[FARMS].update_one({"id": farm_id}, {"$set": {"status": status}})
            except ConnectionFailure:
                raise
            except PyMongoError as e:
                raise DatabaseError(f"Failed to update farm {farm_id}: {e}", operation="update_one", collection=FARMS)

    @retry_database
    def create_field(self, farm_id: int, name: str) -> Dict[str, Any]:
        return self._insert(FIELDS, {"farm_id": farm_id, "name": name})

    @retry_database
    def get_fields(self, farm_id: int) -> List[Dict[str, Any]]:
        return self._list_fields(farm_id)

    def _list_fields(self, farm_id: int) -> List[Dict[str, Any]]:
        with DatabaseMonitor("find", FIELDS):
            try:
                cursor = self.db[FIELDS].find({"farm_id": farm_id}, sort=[("id", 1)])
                return [_clean(doc) for doc in cursor]
            except ConnectionFailure:
                raise
            except PyMongoError as e:
                raise DatabaseError(f"Failed to list fields for farm {farm_id}: {e}", operation="find", collection=FIELDS)

    # Readings

    @retry_database
    def create_water_quality(self, farm_id: int, ph_level: float, tds: float, clarity: str, timestamp: Optional[datetime] = None) -> Dict[str, Any]:
        return self._insert(WATER_QUALITIES, {
            "farm_id": farm_id,
            "ph_level": ph_level,
            "tds": tds,
            "clarity": clarity,
            "timestamp": timestamp or _utcnow(),
        })

    @retry_database
    def create_soil_moisture(self, farm_id: int, field_id: int, moisture_level: float, status: str, timestamp: Optional[datetime] = None) -> Dict[str, Any]:
        return self._insert(SOIL_MOISTURES, {
            "farm_id": farm_id,
            "field_id": field_id,
            "moisture_level": moisture_level,
            "status": status,
            "timestamp": timestamp or _utcnow(),
        })

    @retry_database
    def create_weather_prediction(
        self,
        farm_id: int,
        message: str,
        advice: str,
        forecast: List[Dict[str, Any]],
        timestamp: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        return self._insert(WEATHER_PREDICTIONS, {
            "farm_id": farm_id,
            "message": message,
            "advice": advice,
            "forecast": forecast,
            "timestamp": timestamp or _utcnow(),
        })

    @retry_database
    def create_irrigation_tip(self, farm_id: int, tip: str, timestamp: Optional[datetime] = None) -> Dict[str, Any]:
        return self._insert(IRRIGATION_TIPS, {"farm_id": farm_id, "tip": tip, "timestamp": timestamp or _utcnow()})

    @retry_database
    def latest_water_quality(self, farm_id: int) -> Optional[Dict[str, Any]]:
        return self._find_one(WATER_QUALITIES, {"farm_id": farm_id}, sort=LATEST_FIRST)

    @retry_database
    def latest_soil_moistures(self, farm_id: int) -> List[Dict[str, Any]]:
        """Return the newest soil moisture reading of every field that has one.

        A farm without fields is read as having the single field 1.
        """
        field_ids = [field["id"] for field in self._list_fields(farm_id)] or [1]
        readings = []
        for field_id in field_ids:
            reading = self._find_one(SOIL_MOISTURES, {"farm_id": farm_id, "field_id": field_id}, sort=LATEST_FIRST)
            if reading is not None:
                readings.append(reading)
        return readings

    @retry_database
    def latest_weather_prediction(self, farm_id: int) -> Optional[Dict[str, Any]]:
        return self._find_one(WEATHER_PREDICTIONS, {"farm_id": farm_id}, sort=LATEST_FIRST)

    @retry_database
    def latest_irrigation_tip(self, farm_id: int) -> Optional[Dict[str, Any]]:
        return self._find_one(IRRIGATION_TIPS, {"farm_id": farm_id}, sort=LATEST_FIRST)

    def health_check(self) -> bool:
        """Ping the database. Never raises."""
        with DatabaseMonitor("health_check", "system"):
            try:
                result = self.db.command("ping")
            except (PyMongoError, JalSetuError) as e:
                logger.error(f"Database health check failed: {e}")
                return False
            except Exception as e:
                logger.error(f"Unexpected error during database health check: {e}")
                return False
        return result.get("ok") == 1
