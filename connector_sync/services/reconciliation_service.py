# connector_sync/services/reconciliation_service.py
"""
Fills in charging points that exist on the station but not in the inventory.

Run pipeline:
  1. Collect connectors-count telemetry for COLLECTOR_DURATION seconds
     (the MQTT connection is closed before any DB work starts)
  2. Dedupe to one count per device, highest count wins
  3. In ONE transaction: look up each device's station, compare the live
     count with the stored points, create the missing ones
  4. Commit, or roll back everything if any device fails

Growth only: stations reporting fewer connectors than stored are left
untouched and listed in the summary.
"""

import asyncio
import json
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from connector_sync.config import settings
from connector_sync.database import SessionLocal
from connector_sync.exceptions import StorageError, TransportError
from connector_sync.models.reconciliation_run import ReconciliationRun
from connector_sync.schemas.reconciliation import ReconciliationSummary
from connector_sync.services.deduplicator import deduplicate_pairs, to_device_pairs
from connector_sync.services.inventory_repository import InventoryRepository
from connector_sync.services.telemetry_collector import TelemetryCollector
from connector_sync.utils.logger import get_logger

logger = get_logger(__name__)

# One run at a time per process
_run_lock = asyncio.Lock()


def is_running() -> bool:
    return _run_lock.locked()


async def collect_device_data(collector: Optional[TelemetryCollector] = None,
                              duration: Optional[float] = None) -> list[tuple[str, int]]:
    """Collect telemetry and return deduplicated (device_id, connector_count) pairs."""
    collector = collector or TelemetryCollector()
    topic_counts = await collector.collect(duration)

    pairs = to_device_pairs(topic_counts)
    logger.info(f"Pairs: {pairs}")
    deduplicated = deduplicate_pairs(pairs)
    logger.info(f"Deduplicated pairs: {deduplicated}")
    return deduplicated


def reconcile(pairs: list[tuple[str, int]], db: Session,
              test_device_id: Optional[str] = None) -> ReconciliationSummary:
    """
    Create missing charging points for every device in `pairs` inside a
    single transaction on `db`. Commits on success; on any error rolls back
    all devices and re-raises (DB errors as StorageError).
    """
    repo = InventoryRepository(db)
    summary = ReconciliationSummary(devices_processed=len(pairs))

    try:
        stations = repo.find_all_stations(include_points=True)
        logger.info(f"Found {len(stations)} charging stations")
        if test_device_id:
            logger.warning(f"⚠️  TEST MODE: only processing device {test_device_id}")

        created: dict[str, list[int]] = {}
        for device_id, connector_count in pairs:
            _reconcile_device(repo, device_id, connector_count, test_device_id, summary, created)

        _verify_unique_points(repo, created)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"✗ Transaction rolled back, no charging points were created: {e}")
        if isinstance(e, SQLAlchemyError):
            raise StorageError(f"Reconciliation failed and was rolled back: {e}") from e
        raise

    summary.committed = True
    logger.info(f"✓ Transaction committed — {summary.connectors_created} charging points created, "
                f"{summary.devices_processed} unique devices processed")
    if summary.unmatched_devices:
        logger.warning(f"Stations not found for {len(summary.unmatched_devices)} device(s): "
                       f"{', '.join(summary.unmatched_devices)}")
    return summary


def _reconcile_device(repo: InventoryRepository, device_id: str, connector_count: int,
                      test_device_id: Optional[str], summary: ReconciliationSummary,
                      created: dict[str, list[int]]):
    logger.info(f"Processing device: {device_id}, connector count: {connector_count}")

    station = repo.find_station_by_station_id(device_id)
    if station is None:
        logger.info(f"No station found for device: {device_id}")
        summary.unmatched_devices.append(device_id)
        return

    existing = len(repo.find_charging_points(station.station_id))
    logger.info(f"Station found: {station.name} (id: {station.id}), existing points: {existing}")
    if existing == connector_count:
        return

    logger.info(f"Mismatch! Expected {connector_count}, but found {existing} points")
    if test_device_id and test_device_id != device_id:
        logger.info(f"⊘ Skipped {device_id} (test mode)")
        summary.filtered_devices.append(device_id)
        return

    if connector_count < existing:
        logger.warning(f"{device_id} reports {connector_count} connectors but {existing} points are stored "
                       f"— surplus points left untouched")
        summary.surplus_devices.append(device_id)
        return

    new_points = repo.create_charging_points(station, connector_count, existing)
    logger.info(f"✓ Prepared {len(new_points)} new charging points for {station.station_id}")
    summary.connectors_created += len(new_points)
    created.setdefault(station.station_id, []).extend(p.point_id for p in new_points)


def _verify_unique_points(repo: InventoryRepository, created: dict[str, list[int]]):
    """Another process may have extended the same station since we read it."""
    for station_id, point_numbers in created.items():
        duplicates = repo.find_duplicate_point_numbers(station_id, point_numbers)
        if duplicates:
            raise StorageError(f"Points {duplicates} of {station_id} were created concurrently by another run")


async def run_reconciliation(duration: Optional[float] = None,
                             test_device_id: Optional[str] = None,
                             collector: Optional[TelemetryCollector] = None,
                             session_factory: Callable[[], Session] = SessionLocal) -> ReconciliationSummary:
    """Full pipeline: collect → dedupe → reconcile, then record the run."""
    if test_device_id is None:
        test_device_id = settings.TEST_DEVICE_ID

    async with _run_lock:
        started_at = datetime.utcnow()
        try:
            pairs = await collect_device_data(collector, duration)
        except TransportError as e:
            logger.error(f"❌ Telemetry collection failed: {e}")
            _record_run(session_factory, started_at, "transport_error", test_device_id, error=str(e))
            raise

        db = session_factory()
        try:
            summary = reconcile(pairs, db, test_device_id)
        except Exception as e:
            _record_run(session_factory, started_at, "rolled_back", test_device_id,
                        devices_processed=len(pairs), error=str(e))
            raise
        finally:
            db.close()

        _record_run(session_factory, started_at, "committed", test_device_id,
                    devices_processed=summary.devices_processed,
                    connectors_created=summary.connectors_created,
                    unmatched_devices=summary.unmatched_devices)
        return summary


def _record_run(session_factory, started_at, status, test_device_id,
                devices_processed=0, connectors_created=0, unmatched_devices=None, error=None):
    """Write the audit row in its own transaction. Failures here are logged, not raised."""
    db = session_factory()
    try:
        db.add(ReconciliationRun(
            started_at=started_at,
            finished_at=datetime.utcnow(),
            status=status,
            test_device_id=test_device_id,
            devices_processed=devices_processed,
            connectors_created=connectors_created,
            unmatched_devices=json.dumps(unmatched_devices or []),
            error=error,
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Could not record reconciliation run: {e}")
    finally:
        db.close()
