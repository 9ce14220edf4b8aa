#!/usr/bin/env python3
"""Seed script for the JalSetu farm database.

Creates a farm with its fields and fills in a history of simulated daily
readings so the dashboard endpoints have something to show.
"""

import argparse
import logging
import random
import sys
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from tqdm import tqdm

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from jalsetu.core.config import get_settings
from jalsetu.core.exceptions import JalSetuError
from jalsetu.core.logging import setup_logging
from jalsetu.database.connection import MongoDBConnection
from jalsetu.database.operations import FarmRepository
from jalsetu.services.sensors import moisture_status

DEFAULT_TIP = (
    "Based on your soil type and current moisture levels, water your crops early morning "
    "(5-7 AM) to minimize evaporation and maximize absorption."
)


class FarmSeeder:
    """Writes one farm and its simulated reading history."""

    def __init__(self, repository: FarmRepository, rng: Optional[random.Random] = None):
        self.repository = repository
        self.rng = rng or random.Random()
        self.logger = logging.getLogger(__name__)
        self.stats: Dict[str, Any] = {
            "water_qualities": 0,
            "soil_moistures": 0,
            "irrigation_tips": 0,
            "errors": [],
        }

    def seed(self, name: str, location: str, farmer: str, field_names: List[str], days: int) -> Dict[str, Any]:
        """Create the farm and ``days`` days of readings, oldest first.

        Args:
            name: Farm name
            location: Farm location shown on the dashboard
            farmer: Farmer name shown on the dashboard
            field_names: One field is created per name
            days: Number of daily readings to generate

        Returns:
            Seeding statistics including the new farm id
        """
        start_time = time.time()

        farm = self.repository.create_farm(name, location, farmer_name=farmer)
        fields = [self.repository.create_field(farm["id"], field_name) for field_name in field_names]
        self.logger.info(f"Created farm {farm['id']} ({name}) with {len(fields)} fields")

        now = datetime.now(timezone.utc)
        with tqdm(total=days, desc="Seeding readings") as pbar:
            for offset in range(days, 0, -1):
                timestamp = now - timedelta(days=offset - 1)
                try:
                    self._seed_day(farm["id"], fields, timestamp)
                except JalSetuError as e:
                    self.stats["errors"].append(f"{timestamp.date()}: {e}")

                pbar.update(1)
                pbar.set_postfix({
                    "moisture": self.stats["soil_moistures"],
                    "quality": self.stats["water_qualities"],
                    "errors": len(self.stats["errors"]),
                })

        self.repository.create_irrigation_tip(farm["id"], DEFAULT_TIP, timestamp=now)
        self.stats["irrigation_tips"] += 1

        self.stats["farm_id"] = farm["id"]
        self.stats["total_processing_time"] = time.time() - start_time
        self._log_final_statistics()
        return self.stats

    def _seed_day(self, farm_id: int, fields: List[Dict[str, Any]], timestamp: datetime) -> None:
        self.repository.create_water_quality(
            farm_id,
            ph_level=round(self.rng.uniform(6.2, 7.0), 1),
            tds=self.rng.randrange(300, 450),
            clarity=self.rng.choice(["Clear", "Clear", "Slightly Turbid"]),
            timestamp=timestamp,
        )
        self.stats["water_qualities"] += 1

        for field in fields:
            level = self.rng.randrange(25, 80)
            self.repository.create_soil_moisture(farm_id, field["id"], level, moisture_status(level), timestamp=timestamp)
            self.stats["soil_moistures"] += 1

    def _log_final_statistics(self) -> None:
        self.logger.info("=== Farm Seeding Complete ===")
        self.logger.info(f"Farm id: {self.stats['farm_id']}")
        self.logger.info(f"Water quality readings: {self.stats['water_qualities']}")
        self.logger.info(f"Soil moisture readings: {self.stats['soil_moistures']}")
        self.logger.info(f"Total processing time: {self.stats['total_processing_time']:.2f} seconds")

        if self.stats["errors"]:
            self.logger.warning(f"Errors encountered: {len(self.stats['errors'])}")
            for error in self.stats["errors"][:5]:
                self.logger.warning(f"  - {error}")


def main():
    """Main entry point for the seed script."""
    parser = argparse.ArgumentParser(
        description="Seed a farm with simulated sensor history",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Seed the default demo farm with a week of readings
  python scripts/seed_farm.py

  # Seed a custom farm with three fields and a month of history
  python scripts/seed_farm.py --name "River Bend" --fields "North" "South" "East" --days 30
        """
    )
    parser.add_argument("--name", default="Green Valley Farm", help="Farm name")
    parser.add_argument("--location", default="Karnataka", help="Farm location")
    parser.add_argument("--farmer", default="Ramesh", help="Farmer name")
    parser.add_argument("--fields", nargs="+", default=["Field 1", "Field 2"], help="Field names")
    parser.add_argument("--days", type=int, default=7, help="Days of history to generate")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    args = parser.parse_args()
    setup_logging(log_level=args.log_level)
    logger = logging.getLogger(__name__)

    if args.days < 1:
        parser.error("--days must be at least 1")

    connection = MongoDBConnection(get_settings())
    try:
        repository = FarmRepository(connection=connection)
        seeder = FarmSeeder(repository, rng=random.Random(args.seed))
        stats = seeder.seed(args.name, args.location, args.farmer, args.fields, args.days)
    except JalSetuError as e:
        logger.error(f"Seeding failed: {e}")
        sys.exit(1)
    finally:
        connection.disconnect()

    print(f"Seeded farm {stats['farm_id']}. Set DEFAULT_FARM_ID={stats['farm_id']} to show it on /api/farm-data.")


if __name__ == "__main__":
    main()
