# connector_sync/models/charging_point.py
"""
Charging points table — one row per connector slot on a station.
point_id is the 1-based connector index within the station.
New rows are created by reconciliation_service when MQTT reports more
connectors than the inventory holds.
"""

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, String
from connector_sync.database import Base


class ChargingPoint(Base):
    __tablename__ = "charging_points"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    name = Column(String(255), nullable=False)
    point_id = Column(Integer, nullable=False)
    station_id = Column(String(255), ForeignKey("charging_stations.station_id"), nullable=False, index=True)
    latitude = Column(String(255))
    longitude = Column(String(255))
    error_code = Column(String(255))
    connector_status = Column(String(255))
    created = Column(DateTime)
    updated = Column(DateTime)
    deleted = Column(DateTime)

    def __repr__(self):
        return f"<ChargingPoint {self.station_id}#{self.point_id} id={self.id}>"
