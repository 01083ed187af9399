# connector_sync/models/charging_station.py
"""
Charging stations table (owned by the OCPP backend).
One row per physical installation. station_id is the external code the
station publishes under on MQTT. Read-only for this service.
"""

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from connector_sync.database import Base


class ChargingStation(Base):
    __tablename__ = "charging_stations"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    name = Column(String(255), nullable=False)
    station_id = Column(String(255), unique=True, nullable=False, index=True)
    status = Column(String(255))
    read_only = Column(Boolean, default=False)
    last_heartbeat = Column(DateTime)
    longitude = Column(String(255))
    latitude = Column(String(255))
    vendor = Column(String(255))
    model = Column(String(255))
    mqtt_token = Column(String(255))
    list_version = Column(Integer)
    ocpp_status = Column(String(255), default="Available")
    created = Column(DateTime)
    updated = Column(DateTime)
    deleted = Column(DateTime)   # soft delete; NULL = live

    # Live (non-deleted) connector points only
    charging_points = relationship(
        "ChargingPoint",
        primaryjoin="and_(ChargingStation.station_id == ChargingPoint.station_id, "
                    "ChargingPoint.deleted.is_(None))",
        order_by="ChargingPoint.point_id",
        viewonly=True,
    )

    def __repr__(self):
        return f"<ChargingStation {self.station_id} id={self.id} name={self.name}>"
