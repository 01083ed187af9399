# connector_sync/models/reconciliation_run.py
"""
Audit trail of reconciliation runs.
Written after each run's main transaction has committed or rolled back.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from connector_sync.database import Base


class ReconciliationRun(Base):
    __tablename__ = "reconciliation_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    started_at = Column(DateTime, nullable=False, index=True)
    finished_at = Column(DateTime)
    status = Column(String(50), nullable=False, index=True)  # committed | rolled_back | transport_error
    test_device_id = Column(String(255))
    devices_processed = Column(Integer, default=0, nullable=False)
    connectors_created = Column(Integer, default=0, nullable=False)
    unmatched_devices = Column(Text)   # JSON list of device ids
    error = Column(Text)

    def __repr__(self):
        return f"<ReconciliationRun {self.id} status={self.status} created={self.connectors_created}>"
