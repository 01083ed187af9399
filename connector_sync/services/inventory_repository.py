# connector_sync/services/inventory_repository.py
"""
Read/write access to the charging station inventory.

The caller owns the Session and therefore the transaction: nothing here
commits. create_charging_points() only flushes, so the new rows become
durable when the caller commits and vanish if it rolls back.
"""

import random
import time
from collections import Counter
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from connector_sync.models.charging_point import ChargingPoint
from connector_sync.models.charging_station import ChargingStation
from connector_sync.utils.logger import get_logger

logger = get_logger(__name__)


def normalize_station_id(station_id: str) -> str:
    """Station codes are sometimes stored without dashes (AB-12-34 vs AB1234)."""
    return station_id.replace("-", "")


class InventoryRepository:
    def __init__(self, db: Session):
        self.db = db
        self._issued_ids: set[int] = set()

    # ── Stations ──────────────────────────────────────────────────────────
    def find_all_stations(self, include_points: bool = False) -> list[ChargingStation]:
        """All live stations, optionally with their live points preloaded."""
        q = self.db.query(ChargingStation).filter(ChargingStation.deleted.is_(None))
        if include_points:
            q = q.options(selectinload(ChargingStation.charging_points))
        return q.order_by(ChargingStation.id).all()

    def find_station_by_station_id(self, station_id: str) -> Optional[ChargingStation]:
        """
        Exact match on the external code first, then a dash-insensitive match.
        If several stations share the normalized code the lowest id wins.
        The matched row stays locked (SELECT ... FOR UPDATE) until the caller
        commits or rolls back, so two runs can't extend the same station at once.
        """
        live = (
            self.db.query(ChargingStation)
            .filter(ChargingStation.deleted.is_(None))
            .with_for_update()
        )

        station = live.filter(ChargingStation.station_id == station_id).first()
        if station:
            return station

        normalized = normalize_station_id(station_id)
        matches = (
            live.filter(func.replace(ChargingStation.station_id, "-", "") == normalized)
            .order_by(ChargingStation.id)
            .limit(2)
            .all()
        )
        if len(matches) > 1:
            logger.warning(f"Ambiguous station code {station_id}: several stations normalize to "
                           f"{normalized}, using {matches[0].station_id} (id={matches[0].id})")
        return matches[0] if matches else None

    # ── Points ────────────────────────────────────────────────────────────
    def find_charging_points(self, station_id: str) -> list[ChargingPoint]:
        """
        Live points of a station, by the station's external code.
        Locking read: sees rows committed by other runs even under
        REPEATABLE READ.
        """
        return (
            self.db.query(ChargingPoint)
            .filter(ChargingPoint.station_id == station_id, ChargingPoint.deleted.is_(None))
            .order_by(ChargingPoint.point_id)
            .with_for_update()
            .all()
        )

    def find_duplicate_point_numbers(self, station_id: str, point_numbers) -> list[int]:
        """Which of `point_numbers` occur on more than one live point of the station."""
        numbers = Counter(
            row[0] for row in
            self.db.query(ChargingPoint.point_id)
            .filter(ChargingPoint.station_id == station_id, ChargingPoint.deleted.is_(None))
            .with_for_update()
            .all()
        )
        return sorted(n for n in set(point_numbers) if numbers[n] > 1)

    def create_charging_points(self, station: ChargingStation, new_count: int, old_count: int) -> list[ChargingPoint]:
        """
        Add points old_count+1 .. new_count to the station inside the
        current transaction. Returns [] when new_count <= old_count.
        """
        point_numbers = range(old_count + 1, new_count + 1)
        if not point_numbers:
            return []

        now = datetime.utcnow()
        ids = self._unique_ids(len(point_numbers))
        new_points = [
            ChargingPoint(
                id=point_pk,
                name=station.name,
                point_id=point_number,
                station_id=station.station_id,
                created=now,
                updated=now,
            )
            for point_pk, point_number in zip(ids, point_numbers)
        ]
        logger.debug(f"New points for {station.station_id}: {[(p.id, p.point_id) for p in new_points]}")

        self.db.add_all(new_points)
        self.db.flush()
        return new_points

    # ── Ids ───────────────────────────────────────────────────────────────
    def generate_id(self) -> int:
        """Unix seconds followed by six random digits, unique within this repository."""
        while True:
            candidate = int(f"{int(time.time())}{random.randint(100000, 999999)}")
            if candidate not in self._issued_ids:
                self._issued_ids.add(candidate)
                return candidate

    def _unique_ids(self, count: int) -> list[int]:
        """`count` fresh ids, none of which already exists in charging_points."""
        ids = [self.generate_id() for _ in range(count)]
        while True:
            taken = {
                row[0] for row in
                self.db.query(ChargingPoint.id).filter(ChargingPoint.id.in_(ids)).all()
            }
            if not taken:
                return ids
            logger.warning(f"Regenerating {len(taken)} point id(s) already present in the database")
            ids = [self.generate_id() if point_pk in taken else point_pk for point_pk in ids]
