"""Weather reading model.

One row per sensor observation. Station attributes (device name and
coordinates) live on the same row, so most columns are optional and a
row only carries what the station reported.
"""

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from weather_api.models.base import Base

# Attribute name -> label used on the wire
READING_FIELD_LABELS: dict[str, str] = {
    "time": "Time",
    "device_id": "Device ID",
    "device_name": "Device Name",
    "latitude": "Latitude",
    "longitude": "Longitude",
    "temperature_c": "Temperature (C)",
    "temperature_f": "Temperature (F)",
    "temperature_k": "Temperature (K)",
    "atmospheric_pressure_kpa": "Atmospheric Pressure (kPa)",
    "lightning_avg_distance_km": "Lightning Average Distance (km)",
    "lightning_strike_count": "Lightning Strike Count",
    "max_wind_speed_ms": "Maximum Wind Speed (m/s)",
    "precipitation_mm_h": "Precipitation (mm/h)",
    "solar_radiation_wm2": "Solar Radiation (W/m2)",
    "vapor_pressure_kpa": "Vapor Pressure (kPa)",
    "humidity_pct": "Humidity (%)",
    "wind_direction_deg": "Wind Direction (deg)",
    "wind_speed_ms": "Wind Speed (m/s)",
}


class Reading(Base):
    """A single weather observation."""

    __tablename__ = "readings"

    __table_args__ = (
        Index("ix_readings_device_time", "device_id", "time"),
    )

    id: Mapped[str] = mapped_column(String(24), primary_key=True)

    # When the observation was taken (defaults to insertion time)
    time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    device_id: Mapped[str | None] = mapped_column(String(100))
    device_name: Mapped[str | None] = mapped_column(String(255))
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)

    temperature_c: Mapped[float | None] = mapped_column(Float)
    temperature_f: Mapped[float | None] = mapped_column(Float)
    temperature_k: Mapped[float | None] = mapped_column(Float)
    atmospheric_pressure_kpa: Mapped[float | None] = mapped_column(Float)
    lightning_avg_distance_km: Mapped[float | None] = mapped_column(Float)
    lightning_strike_count: Mapped[int | None] = mapped_column(Integer)
    max_wind_speed_ms: Mapped[float | None] = mapped_column(Float)
    precipitation_mm_h: Mapped[float | None] = mapped_column(Float)
    solar_radiation_wm2: Mapped[float | None] = mapped_column(Float)
    vapor_pressure_kpa: Mapped[float | None] = mapped_column(Float)
    humidity_pct: Mapped[float | None] = mapped_column(Float)
    wind_direction_deg: Mapped[float | None] = mapped_column(Float)
    wind_speed_ms: Mapped[float | None] = mapped_column(Float)

    def to_fields(self) -> dict:
        """Return the populated fields keyed by attribute name."""
        return {
            name: getattr(self, name)
            for name in READING_FIELD_LABELS
            if getattr(self, name) is not None
        }

    def __repr__(self) -> str:
        return f"<Reading(id={self.id}, device_id={self.device_id}, time={self.time})>"
