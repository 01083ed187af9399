# Connector Sync — Database Models
# Import all models here for SQLAlchemy discovery

from connector_sync.models.charging_station import ChargingStation       # noqa
from connector_sync.models.charging_point import ChargingPoint           # noqa
from connector_sync.models.reconciliation_run import ReconciliationRun   # noqa
