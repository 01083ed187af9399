# connector_sync/cli.py
"""
One-shot reconciliation run.
Usage: connector-sync [--duration 60] [--device STATION-ID] [--broker mqtt://host:1883] [--json]

Exit codes: 0 ok, 1 unexpected error, 2 MQTT transport failure, 3 database failure.
"""

import argparse
import asyncio
import sys

from connector_sync.exceptions import StorageError, TransportError
from connector_sync.services.reconciliation_service import run_reconciliation
from connector_sync.services.telemetry_collector import TelemetryCollector
from connector_sync.utils.logger import get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_TRANSPORT = 2
EXIT_STORAGE = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="connector-sync",
        description="Create charging points missing from the inventory, based on live MQTT connector counts",
    )
    parser.add_argument("--duration", type=float, default=None,
                        help="Seconds to collect telemetry (default: COLLECTOR_DURATION)")
    parser.add_argument("--device", default=None,
                        help="Only write points for this device id (default: TEST_DEVICE_ID)")
    parser.add_argument("--broker", default=None,
                        help="MQTT broker URL (default: MQTT_BROKER_URL)")
    parser.add_argument("--json", action="store_true", help="Print the run summary as JSON")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    collector = TelemetryCollector(broker_url=args.broker) if args.broker else None

    try:
        summary = asyncio.run(run_reconciliation(
            duration=args.duration,
            test_device_id=args.device,
            collector=collector,
        ))
    except TransportError as e:
        logger.error(f"Run aborted, MQTT transport failure: {e}")
        return EXIT_TRANSPORT
    except StorageError as e:
        logger.error(f"Run aborted, database failure: {e}")
        return EXIT_STORAGE
    except Exception as e:
        logger.error(f"Run aborted: {e}", exc_info=True)
        return EXIT_ERROR

    if args.json:
        print(summary.model_dump_json(indent=2))
    else:
        print(f"Devices processed:     {summary.devices_processed}")
        print(f"Charging points added: {summary.connectors_created}")
        if summary.unmatched_devices:
            print(f"Stations not found ({len(summary.unmatched_devices)}):")
            for device_id in summary.unmatched_devices:
                print(f"  {device_id}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
